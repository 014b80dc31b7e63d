"""
MeMantra Backend — ORM Models
===============================

Importing this package registers every table on `Base.metadata`, which is
what Alembic autogenerate and the test suite's `create_all` rely on.
"""

from app.models.user import User
from app.models.mantra import Mantra
from app.models.category import Category, MantraCategory
from app.models.collection import Collection, CollectionMantra
from app.models.like import Like
from app.models.conversation import Conversation
from app.models.message import Message, MessageReaction

__all__ = [
    "User",
    "Mantra",
    "Category",
    "MantraCategory",
    "Collection",
    "CollectionMantra",
    "Like",
    "Conversation",
    "Message",
    "MessageReaction",
]
