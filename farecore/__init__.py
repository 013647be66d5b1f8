"""Flight offer access layer with provider fallback and price monitoring."""

__version__ = "0.1.0"
