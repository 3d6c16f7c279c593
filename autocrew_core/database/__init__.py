"""Database models and helpers for AutoCrew core."""

from .models import Base, Clients, Conversations, Crews, KnowledgeBaseDocuments

__all__ = ["Base", "Clients", "Conversations", "Crews", "KnowledgeBaseDocuments"]
