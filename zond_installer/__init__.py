"""Zond testnet node installer."""

__version__ = '1.0.0'
