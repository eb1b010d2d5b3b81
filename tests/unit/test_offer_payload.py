from __future__ import annotations

import json
from datetime import datetime, timezone

import pytest

from coach_chat.domain.offers.composition import (
    ITEM_ICONS,
    build_offer,
    build_session_offer,
    summarize,
)
from coach_chat.domain.offers.lifecycle import can_transition, resolution_patch
from coach_chat.domain.offers.payload import (
    PackageOffer,
    SessionOffer,
    SubscriptionOffer,
    claims_offer,
    dump_offer,
    parse_offer,
)
from coach_chat.domain.value_objects.enums import ItemType, OfferStatus
from tests.conftest import COACH_ID, make_catalog_item


@pytest.fixture
def package_offer():
    return build_offer(ItemType.PACKAGE, make_catalog_item(), COACH_ID)


def test_build_offer_is_pending_and_typed(package_offer):
    assert isinstance(package_offer, PackageOffer)
    assert package_offer.status == OfferStatus.PENDING
    assert package_offer.issuer_id == COACH_ID
    assert package_offer.price == 45000
    assert package_offer.session_count == 10


def test_build_offer_rejects_mismatched_item_type():
    with pytest.raises(ValueError):
        build_offer(ItemType.SUBSCRIPTION, make_catalog_item(), COACH_ID)


def test_dump_uses_camel_case_wire_keys(package_offer):
    raw = dump_offer(package_offer)
    assert raw["type"] == "quick_send"
    assert raw["itemType"] == "package"
    assert raw["itemId"] == "pkg-10"
    assert raw["coachId"] == COACH_ID
    assert raw["sessionCount"] == 10
    assert raw["status"] == "pending"
    assert "itemDescription" not in raw
    assert "respondedAt" not in raw


def test_parse_accepts_dict_and_json(package_offer):
    raw = dump_offer(package_offer)
    assert parse_offer(raw) == package_offer
    assert parse_offer(json.dumps(raw)) == package_offer


@pytest.mark.parametrize(
    "raw",
    [
        None,
        42,
        "not json",
        {},
        {"type": "quick_send"},
        {"type": "something_else", "itemType": "package"},
    ],
)
def test_parse_never_raises(raw):
    assert parse_offer(raw) is None


def test_parse_rejects_fractional_price(package_offer):
    raw = {**dump_offer(package_offer), "price": 49.99}
    assert parse_offer(raw) is None


def test_parse_rejects_unknown_item_type(package_offer):
    raw = {**dump_offer(package_offer), "itemType": "voucher"}
    assert parse_offer(raw) is None


def test_claims_offer_only_looks_at_envelope():
    assert claims_offer({"type": "quick_send", "price": "bad"})
    assert not claims_offer({"type": "image"})
    assert not claims_offer(None)


def test_summarize_package(package_offer):
    assert summarize(package_offer) == "📦 10 PT Sessions – £450.00 (10 sessions)"


def test_summarize_subscription_appends_period():
    item = make_catalog_item(
        item_id="sub-monthly",
        item_type=ItemType.SUBSCRIPTION,
        name="Monthly Coaching",
        price_minor=4999,
        billing_period="month",
    )
    offer = build_offer(ItemType.SUBSCRIPTION, item, COACH_ID)
    assert isinstance(offer, SubscriptionOffer)
    assert summarize(offer) == "💳 Monthly Coaching – £49.99/month"


def test_summarize_free_item():
    item = make_catalog_item(
        item_id="plan-free",
        item_type=ItemType.TRAINING_PLAN,
        name="Starter Plan",
        price_minor=0,
    )
    offer = build_offer(ItemType.TRAINING_PLAN, item, COACH_ID)
    assert summarize(offer) == f"{ITEM_ICONS[ItemType.TRAINING_PLAN]} Starter Plan – Free"


def test_summarize_single_session():
    offer = build_offer(ItemType.PACKAGE, make_catalog_item(session_count=1), COACH_ID)
    assert summarize(offer).endswith("(1 session)")


def test_lifecycle_has_no_way_back():
    assert can_transition(OfferStatus.PENDING, OfferStatus.ACCEPTED)
    assert can_transition(OfferStatus.PENDING, OfferStatus.DECLINED)
    assert not can_transition(OfferStatus.PENDING, OfferStatus.PENDING)
    assert not can_transition(OfferStatus.ACCEPTED, OfferStatus.DECLINED)
    assert not can_transition(OfferStatus.ACCEPTED, OfferStatus.PENDING)
    assert not can_transition(OfferStatus.DECLINED, OfferStatus.ACCEPTED)


def test_resolution_patch():
    ts = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    assert resolution_patch(OfferStatus.DECLINED, ts) == {
        "status": "declined",
        "respondedAt": "2024-05-01T12:00:00+00:00",
    }
    with pytest.raises(ValueError):
        resolution_patch(OfferStatus.PENDING, ts)


def test_resolved_payload_still_parses(package_offer):
    ts = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    raw = {**dump_offer(package_offer), **resolution_patch(OfferStatus.ACCEPTED, ts)}
    offer = parse_offer(raw)
    assert offer is not None
    assert offer.status == OfferStatus.ACCEPTED
    assert offer.responded_at == ts
    assert not offer.is_pending


def _session_offer(**kwargs):
    fields = {
        "session_type": "Personal Training",
        "proposed_start": datetime(2024, 5, 6, 10, 0, tzinfo=timezone.utc),
        "duration_minutes": 60,
        "price_minor": 3000,
        "currency": "gbp",
    }
    fields.update(kwargs)
    return build_session_offer(COACH_ID, "sess-1", **fields)


def test_session_offer_round_trips_on_the_wire():
    offer = _session_offer()
    raw = dump_offer(offer)

    assert raw["itemType"] == "session"
    assert raw["itemName"] == "Personal Training"
    assert raw["proposedStart"] == "2024-05-06T10:00:00Z"
    assert raw["durationMinutes"] == 60
    assert raw["isOnline"] is True
    assert raw["currency"] == "GBP"

    parsed = parse_offer(json.dumps(raw))
    assert isinstance(parsed, SessionOffer)
    assert parsed.proposed_start == offer.proposed_start
    assert parsed.issuer_id == COACH_ID


def test_summarize_session_offer():
    assert summarize(_session_offer()) == (
        f"{ITEM_ICONS[ItemType.SESSION]} Personal Training – £30.00 (Mon 06 May 2024 10:00, 60 min, Online)"
    )
    in_person = _session_offer(price_minor=0, is_online=False, location="Riverside Gym")
    assert summarize(in_person) == (
        f"{ITEM_ICONS[ItemType.SESSION]} Personal Training – Free (Mon 06 May 2024 10:00, 60 min, Riverside Gym)"
    )


def test_online_session_drops_location():
    assert _session_offer(location="Riverside Gym").location is None


def test_session_offer_without_start_is_not_an_offer():
    raw = dump_offer(_session_offer())
    del raw["proposedStart"]
    assert parse_offer(raw) is None


def test_catalog_builder_refuses_sessions():
    item = make_catalog_item(item_type=ItemType.SESSION)
    with pytest.raises(ValueError):
        build_offer(ItemType.SESSION, item, COACH_ID)
