"""Import all models so Alembic can discover them via Base.metadata."""
from coach_chat.infrastructure.db.models.catalog_item import CatalogItemModel
from coach_chat.infrastructure.db.models.message import MessageModel
from coach_chat.infrastructure.db.models.outbox import OutboxMessageModel
from coach_chat.infrastructure.db.models.profile import ProfileModel

__all__ = [
    "CatalogItemModel",
    "MessageModel",
    "OutboxMessageModel",
    "ProfileModel",
]
