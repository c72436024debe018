"""Encrypted seed users with normalized avatars."""

__version__ = "0.1.0"
