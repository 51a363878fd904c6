"""Declarative base shared by the notification models."""

from sqlalchemy.orm import declarative_base

Base = declarative_base()
