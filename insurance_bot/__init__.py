"""Telegram bot that walks a user through a car insurance purchase."""

__version__ = "0.1.0"
