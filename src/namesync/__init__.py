"""Namecoin name-registry to database synchronization."""

__version__ = "0.1.0"
