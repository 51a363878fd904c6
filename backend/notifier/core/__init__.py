"""Core infrastructure shared by every notifier module.

Cross-cutting concerns live here:
- enums: environment, log level and log format
- errors: the error hierarchy used across layers
- logging: structlog-based structured logging
- config: environment loading and typed settings sections
"""
