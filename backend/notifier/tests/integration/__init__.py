"""Integration tests wiring real collaborators together.

Covers SQL template storage on SQLite and the dependency injection
container driving events end to end.
"""
