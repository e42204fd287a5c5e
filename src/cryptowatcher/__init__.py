"""Terminal dashboard that polls an exchange and charts live prices."""

__version__ = "0.1.0"
