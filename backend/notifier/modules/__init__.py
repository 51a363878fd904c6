"""Bounded contexts of the notifier backend."""
