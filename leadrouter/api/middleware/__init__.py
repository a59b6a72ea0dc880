"""API middleware: authentication and request context."""
