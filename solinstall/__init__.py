"""Solution installer — provision third-party repositories as running containers."""

__version__ = "0.1.0"
