"""Notifier test suite."""
