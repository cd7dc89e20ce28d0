"""Campaign traffic-splitting redirector."""

__version__ = "1.0.0"
