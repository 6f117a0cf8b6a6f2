"""Models, configuration, repositories and WSGI middleware for an event ticketing service."""

__version__ = "1.0.0"