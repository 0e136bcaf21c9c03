"""TodoVault - a personal task manager backed by an encrypted local vault."""

__version__ = "0.1.0"
