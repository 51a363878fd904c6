"""Unit tests for isolated notifier components."""
