"""Routers package."""

from . import chat, conversations, health, projects

__all__ = ["chat", "conversations", "health", "projects"]
