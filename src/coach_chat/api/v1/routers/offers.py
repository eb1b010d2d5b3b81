from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query

from coach_chat.api.deps import CurrentPrincipal, UoWDep
from coach_chat.api.v1.schemas.catalog import CatalogItemResponse
from coach_chat.api.v1.schemas.message import MessageResponse
from coach_chat.api.v1.schemas.offer import (
    CheckoutHandoffResponse,
    RespondOfferRequest,
    RespondOfferResponse,
    SendOfferRequest,
    SendSessionOfferRequest,
)
from coach_chat.application.dto.offer import OfferOverrides, SessionProposal
from coach_chat.domain.value_objects.enums import ItemType, OfferStatus
from coach_chat.domain.value_objects.money import format_money
from coach_chat.services import catalog_service, offer_service, session_offer_service

router = APIRouter(prefix="/api/v1/chat", tags=["offers"])


@router.get("/catalog", response_model=list[CatalogItemResponse])
async def list_catalog(
    principal: CurrentPrincipal,
    uow: UoWDep,
    item_type: ItemType | None = Query(None),
) -> list[CatalogItemResponse]:
    items = await catalog_service.list_catalog(principal, item_type, uow)
    return [
        CatalogItemResponse(
            id=item.id,
            item_type=item.item_type,
            name=item.name,
            description=item.description,
            price_minor=item.price_minor,
            currency=item.currency,
            price_text=format_money(item.price_minor, item.currency),
            session_count=item.session_count,
            billing_period=item.billing_period,
        )
        for item in items
    ]


@router.post(
    "/conversations/{partner_id}/offers",
    response_model=MessageResponse,
    status_code=201,
)
async def send_offer(
    partner_id: str,
    body: SendOfferRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> MessageResponse:
    overrides = None
    if body.overrides is not None:
        overrides = OfferOverrides(**body.overrides.model_dump())
    msg, _created = await catalog_service.send_catalog_offer(
        principal,
        partner_id,
        body.item_type,
        body.item_id,
        body.client_msg_id,
        uow,
        overrides=overrides,
    )
    return MessageResponse.model_validate(msg, from_attributes=True)


@router.post(
    "/conversations/{partner_id}/session-offers",
    response_model=MessageResponse,
    status_code=201,
)
async def send_session_offer(
    partner_id: str,
    body: SendSessionOfferRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> MessageResponse:
    proposal = SessionProposal(**body.model_dump(exclude={"client_msg_id"}))
    msg, _created = await session_offer_service.send_session_offer(
        principal, partner_id, proposal, body.client_msg_id, uow,
    )
    return MessageResponse.model_validate(msg, from_attributes=True)


@router.post("/messages/{message_id}/offer/respond", response_model=RespondOfferResponse)
async def respond_to_offer(
    message_id: UUID,
    body: RespondOfferRequest,
    principal: CurrentPrincipal,
    uow: UoWDep,
) -> RespondOfferResponse:
    result = await offer_service.respond(message_id, principal, OfferStatus(body.decision), uow)
    checkout = None
    if result.checkout is not None:
        checkout = CheckoutHandoffResponse(
            item_type=result.checkout.item_type,
            item_id=result.checkout.item_id,
            issuer_id=result.checkout.issuer_id,
        )
    return RespondOfferResponse(
        message=MessageResponse.model_validate(result.message, from_attributes=True),
        checkout=checkout,
    )
