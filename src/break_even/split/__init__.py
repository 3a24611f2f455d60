"""Expense splitting and settlement tools."""
