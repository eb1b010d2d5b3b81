"""Seed development data: a coach, a client, a small catalog and a conversation."""
from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone

from sqlalchemy.dialects.postgresql import insert as pg_insert

from coach_chat.api.middleware.correlation_id import configure_logging
from coach_chat.config import settings
from coach_chat.domain.entities.catalog_item import CatalogItem
from coach_chat.domain.entities.message import Message
from coach_chat.domain.offers.composition import build_offer, summarize
from coach_chat.domain.offers.payload import dump_offer
from coach_chat.domain.value_objects.enums import ItemType, ParticipantRole
from coach_chat.infrastructure.db.models.catalog_item import CatalogItemModel
from coach_chat.infrastructure.db.models.profile import ProfileModel
from coach_chat.infrastructure.db.session import AsyncSessionLocal
from coach_chat.infrastructure.db.uow import SqlAlchemyUoW

logger = logging.getLogger(__name__)

COACH_ID = "coach-1"
CLIENT_ID = "client-1"

PROFILES = [
    {"id": COACH_ID, "display_name": "Sam Coach", "avatar_url": None, "role": ParticipantRole.COACH.value},
    {"id": CLIENT_ID, "display_name": "Alex Client", "avatar_url": None, "role": ParticipantRole.CLIENT.value},
]

CATALOG = [
    CatalogItem(
        id="pkg-10",
        coach_id=COACH_ID,
        item_type=ItemType.PACKAGE,
        name="10 PT Sessions",
        description="Ten one-to-one sessions",
        price_minor=45000,
        currency="GBP",
        session_count=10,
    ),
    CatalogItem(
        id="sub-monthly",
        coach_id=COACH_ID,
        item_type=ItemType.SUBSCRIPTION,
        name="Monthly Coaching",
        description=None,
        price_minor=4999,
        currency="GBP",
        billing_period="month",
    ),
    CatalogItem(
        id="plan-free",
        coach_id=COACH_ID,
        item_type=ItemType.TRAINING_PLAN,
        name="Starter Plan",
        description="Four-week beginner programme",
        price_minor=0,
        currency="GBP",
    ),
]


async def seed() -> None:
    async with AsyncSessionLocal() as session:
        uow = SqlAlchemyUoW(session)
        now = datetime.now(timezone.utc)

        await session.execute(pg_insert(ProfileModel).values(PROFILES).on_conflict_do_nothing())
        await session.execute(
            pg_insert(CatalogItemModel)
            .values(
                [
                    {
                        "id": item.id,
                        "coach_id": item.coach_id,
                        "item_type": item.item_type.value,
                        "name": item.name,
                        "description": item.description,
                        "price_minor": item.price_minor,
                        "currency": item.currency,
                        "session_count": item.session_count,
                        "billing_period": item.billing_period,
                        "is_active": item.is_active,
                    }
                    for item in CATALOG
                ]
            )
            .on_conflict_do_nothing()
        )

        offer = build_offer(ItemType.PACKAGE, CATALOG[0], COACH_ID)
        conversation = [
            (CLIENT_ID, COACH_ID, "Hi! I'd like to get back into training.", None),
            (COACH_ID, CLIENT_ID, "Great to hear. Here is what I'd suggest:", None),
            (COACH_ID, CLIENT_ID, summarize(offer), dump_offer(offer)),
        ]
        for i, (sender_id, recipient_id, body, metadata) in enumerate(conversation):
            await uow.messages_w.create_if_not_exists(
                Message(
                    id=uuid.uuid4(),
                    sender_id=sender_id,
                    recipient_id=recipient_id,
                    body=body,
                    metadata=metadata,
                    client_msg_id=uuid.uuid5(uuid.NAMESPACE_URL, f"seed/{i}"),
                    created_at=now + timedelta(seconds=i),
                )
            )

        await uow.commit()
        logger.info("Seeded %d profiles, %d catalog items, %d messages",
                    len(PROFILES), len(CATALOG), len(conversation))


def main() -> None:
    configure_logging(settings.LOG_LEVEL)
    asyncio.run(seed())


if __name__ == "__main__":
    main()
