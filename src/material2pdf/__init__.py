"""material2pdf: render structured teaching material into paginated PDFs."""

__version__ = "0.1.0"
