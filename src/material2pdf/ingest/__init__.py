"""Input side of the pipeline: analysis, markdown conversion and diagram cleanup."""
