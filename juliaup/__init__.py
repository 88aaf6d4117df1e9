"""Julia installer and version multiplexer: channels, installs, updates and status."""

__version__ = "1.17.20"