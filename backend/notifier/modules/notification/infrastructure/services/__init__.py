"""Notification infrastructure services."""
