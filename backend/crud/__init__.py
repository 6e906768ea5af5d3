"""
CRUD operations for database models
"""
from . import conversations

__all__ = ["conversations"]
