"""Telegram remote control for a Raspberry Pi."""

__all__ = ["__version__"]

__version__ = "0.4.0"
