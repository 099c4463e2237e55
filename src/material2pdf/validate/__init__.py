"""Post-generation checks and the auto-fix advisor."""
