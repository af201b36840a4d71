"""Personal expense/income tracker: REST API plus server-rendered pages."""

__version__ = "0.1.0"
