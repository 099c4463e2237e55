"""Data model: content tree, rendering options and pipeline result records."""
