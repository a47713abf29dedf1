"""Destination proximity tracking with arrival alarms."""

__version__ = "0.1.0"
