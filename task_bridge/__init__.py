"""Queue agent task notifications and jump back to the originating session."""

__version__ = "0.1.0"
