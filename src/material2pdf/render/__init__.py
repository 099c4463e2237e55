"""Page layout and drawing: strategies, paginator, block renderer and footers."""
