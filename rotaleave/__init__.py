"""Rota Leave — duty-cycle absence accounting and leave request lifecycle."""

__version__ = "1.0.0"
