"""Backup and restore of Teams Enterprise Voice tenant configuration."""

__version__ = "0.3.0"
