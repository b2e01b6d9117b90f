"""FastAPI server exposing the OAuth broker to the admin UI."""

__version__ = "1.0.0"
