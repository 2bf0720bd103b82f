"""Household net-worth projection with South African income tax and CGT."""

__version__ = "0.1.0"
