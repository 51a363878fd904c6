"""Notification bounded context.

Turns business events into rendered, rate-limited, retried deliveries over
email, push and realtime channels.
"""
