"""Unified remote-control layer for Samsung, LG WebOS and Android TV."""

__version__ = "0.3.0"
