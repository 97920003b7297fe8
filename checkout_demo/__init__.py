"""Drop-in checkout demo: embedded payment widget session lifecycle."""

__version__ = "1.0.0"
