"""Expense Plotter - recurring entries and balance projection."""

__version__ = "0.3.0"
