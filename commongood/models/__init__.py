"""Database models for the CommonGood application."""

from .user import User
from .listing import Listing
from .message import Conversation, Message
from .review import Review

__all__ = ['User', 'Listing', 'Conversation', 'Message', 'Review']
