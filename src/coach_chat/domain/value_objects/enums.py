from __future__ import annotations

from enum import StrEnum


class ParticipantRole(StrEnum):
    CLIENT = "client"
    COACH = "coach"
    ADMIN = "admin"


class ItemType(StrEnum):
    PACKAGE = "package"
    SUBSCRIPTION = "subscription"
    DIGITAL_PRODUCT = "digital-product"
    DIGITAL_BUNDLE = "digital-bundle"
    TRAINING_PLAN = "training-plan"
    MEAL_PLAN = "meal-plan"
    SESSION = "session"


class OfferStatus(StrEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
