"""vigil — condition waits for screen automation."""

__version__ = "0.1.0"
