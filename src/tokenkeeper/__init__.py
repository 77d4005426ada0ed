"""Client-side session manager with proactive credential renewal."""

__version__ = "0.1.0"
