"""Notification infrastructure: rendering, providers, state stores and persistence."""
