"""Coding Agent Chat - generate, build and run small projects from chat."""

from coding_agent_chat.models import (
    Conversation,
    Language,
    Message,
    Project,
    ProjectFile,
    ProjectStatus,
)

__all__ = ["Conversation", "Language", "Message", "Project", "ProjectFile", "ProjectStatus"]
