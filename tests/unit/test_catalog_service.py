from __future__ import annotations

import uuid
from decimal import Decimal

import pytest

from coach_chat.application.dto.offer import OfferOverrides
from coach_chat.application.dto.principal import Principal
from coach_chat.application.exceptions import (
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from coach_chat.domain.offers.payload import parse_offer
from coach_chat.domain.value_objects.enums import ItemType, OfferStatus, ParticipantRole
from coach_chat.services import catalog_service, offer_service
from coach_chat.view.rendering import RenderKind, render_message
from tests.conftest import CLIENT_ID, COACH_ID, make_catalog_item


@pytest.fixture
def catalog(uow):
    uow.catalog._items.extend(
        [
            make_catalog_item(),
            make_catalog_item(
                item_id="sub-monthly",
                item_type=ItemType.SUBSCRIPTION,
                name="Monthly Coaching",
                price_minor=4999,
                billing_period="month",
            ),
            make_catalog_item(item_id="pkg-old", name="Retired", is_active=False),
            make_catalog_item(item_id="pkg-other", coach_id="coach-2"),
        ]
    )
    return uow.catalog


@pytest.mark.asyncio
async def test_list_catalog_for_coach(coach_principal, uow, catalog):
    items = await catalog_service.list_catalog(coach_principal, None, uow)
    assert [i.id for i in items] == ["pkg-10", "sub-monthly"]

    packages = await catalog_service.list_catalog(coach_principal, ItemType.PACKAGE, uow)
    assert [i.id for i in packages] == ["pkg-10"]


@pytest.mark.asyncio
async def test_list_catalog_requires_coach(client_principal, uow, catalog):
    with pytest.raises(AuthorizationError):
        await catalog_service.list_catalog(client_principal, None, uow)


@pytest.mark.asyncio
async def test_send_catalog_offer(coach_principal, uow, catalog):
    msg, created = await catalog_service.send_catalog_offer(
        coach_principal, CLIENT_ID, ItemType.PACKAGE, "pkg-10", uuid.uuid4(), uow,
    )

    assert created is True
    assert msg.body == "📦 10 PT Sessions – £450.00 (10 sessions)"
    offer = parse_offer(msg.metadata)
    assert offer.item_id == "pkg-10"
    assert offer.issuer_id == COACH_ID
    assert offer.status == OfferStatus.PENDING


@pytest.mark.asyncio
async def test_send_catalog_offer_with_overrides(coach_principal, uow, catalog):
    overrides = OfferOverrides(
        name="Summer Special", price=Decimal("49.99"), session_count=4,
    )

    msg, _ = await catalog_service.send_catalog_offer(
        coach_principal, CLIENT_ID, ItemType.PACKAGE, "pkg-10", uuid.uuid4(), uow,
        overrides=overrides,
    )

    assert msg.metadata["price"] == 4999
    assert msg.metadata["itemName"] == "Summer Special"
    assert msg.body == "📦 Summer Special – £49.99 (4 sessions)"
    # The catalog itself is untouched.
    assert (await uow.catalog.get_item(ItemType.PACKAGE, "pkg-10")).price_minor == 45000


@pytest.mark.asyncio
async def test_negative_price_override_rejected(coach_principal, uow, catalog):
    with pytest.raises(ValidationError):
        await catalog_service.send_catalog_offer(
            coach_principal, CLIENT_ID, ItemType.PACKAGE, "pkg-10", uuid.uuid4(), uow,
            overrides=OfferOverrides(price=Decimal("-5")),
        )


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("item_type", "item_id", "error"),
    [
        (ItemType.PACKAGE, "pkg-old", NotFoundError),
        (ItemType.PACKAGE, "missing", NotFoundError),
        (ItemType.SUBSCRIPTION, "pkg-10", NotFoundError),
        (ItemType.PACKAGE, "pkg-other", AuthorizationError),
    ],
)
async def test_send_catalog_offer_rejections(coach_principal, uow, catalog, item_type, item_id, error):
    with pytest.raises(error):
        await catalog_service.send_catalog_offer(
            coach_principal, CLIENT_ID, item_type, item_id, uuid.uuid4(), uow,
        )


@pytest.mark.asyncio
async def test_clients_cannot_send_offers(client_principal, uow, catalog):
    with pytest.raises(AuthorizationError):
        await catalog_service.send_catalog_offer(
            client_principal, COACH_ID, ItemType.PACKAGE, "pkg-10", uuid.uuid4(), uow,
        )


@pytest.mark.asyncio
async def test_package_offer_accept_scenario(coach_principal, client_principal, uow, catalog):
    """Coach sends a package, the client accepts, both sides see it resolved."""
    msg, _ = await catalog_service.send_catalog_offer(
        coach_principal, CLIENT_ID, ItemType.PACKAGE, "pkg-10", uuid.uuid4(), uow,
    )

    client_view = render_message(msg, CLIENT_ID)
    coach_view = render_message(msg, COACH_ID)
    assert client_view.kind == RenderKind.OFFER_PENDING
    assert client_view.can_respond is True
    assert coach_view.can_respond is False

    result = await offer_service.respond(msg.id, client_principal, OfferStatus.ACCEPTED, uow)

    assert result.checkout.to_payload() == {
        "itemType": "package",
        "itemId": "pkg-10",
        "issuerId": COACH_ID,
    }
    stored = uow.messages._store[msg.id]
    for viewer in (CLIENT_ID, COACH_ID):
        view = render_message(stored, viewer)
        assert view.kind == RenderKind.OFFER_ACCEPTED
        assert view.can_respond is False


@pytest.mark.asyncio
async def test_admin_is_not_a_coach(uow, catalog):
    admin = Principal(subject_id="admin-1", role=ParticipantRole.ADMIN)
    with pytest.raises(AuthorizationError):
        await catalog_service.list_catalog(admin, None, uow)
