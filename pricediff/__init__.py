"""Rank price changes between two produce price list snapshots."""

__version__ = "0.1.0"
