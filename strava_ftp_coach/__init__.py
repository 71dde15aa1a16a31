"""Strava FTP Coach - training load, FTP estimation and adaptive weekly planning."""

__version__ = "0.1.0"
