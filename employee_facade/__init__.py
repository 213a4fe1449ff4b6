"""Caching, resilient REST facade in front of an upstream employee directory."""

__version__ = "0.1.0"
