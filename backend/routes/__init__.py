"""
API route handlers
"""
from .chat import router as chat_router
from .messages import router as messages_router

__all__ = ["chat_router", "messages_router"]
