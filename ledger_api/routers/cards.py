"""
Cards router — card queries and lifecycle mutations.

Endpoints (all require "Authorization: Bearer <token>"):
    GET  /queries/account-cards             — All cards of an account
    GET  /queries/account-card              — One card
    GET  /queries/account-active-card       — The account's active card, or null
    POST /mutations/save-account-card       — Issue a card
    POST /mutations/inactivate-account-card — Deactivate one card
    POST /mutations/activate-account-card   — Make one card the only active card

Saving a card does not touch its siblings, so two active cards can coexist
until activate-account-card is used.
"""

from fastapi import APIRouter, Depends, status

from ledger_api.dependencies import get_gateway
from ledger_api.gateway import QueryGateway
from ledger_api.schemas.card import CardInput, CardRef, CardResponse

router = APIRouter()


@router.get(
    "/queries/account-cards",
    response_model=list[CardResponse],
    summary="List the cards of an account",
)
async def account_cards(
    account_id: str,
    gateway: QueryGateway = Depends(get_gateway),
):
    return await gateway.list_cards(account_id)


@router.get(
    "/queries/account-card",
    response_model=CardResponse,
    summary="Get one card",
)
async def account_card(
    account_id: str,
    card_id: str,
    gateway: QueryGateway = Depends(get_gateway),
):
    return await gateway.get_card(account_id, card_id)


@router.get(
    "/queries/account-active-card",
    response_model=CardResponse | None,
    summary="Get the active card of an account",
)
async def account_active_card(
    account_id: str,
    gateway: QueryGateway = Depends(get_gateway),
):
    """Returns null when the account has no active card."""
    return await gateway.get_active_card(account_id)


@router.post(
    "/mutations/save-account-card",
    response_model=CardResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Issue a card",
)
async def save_account_card(
    request: CardInput,
    gateway: QueryGateway = Depends(get_gateway),
):
    """The CVV is encrypted before storage and never returned."""
    return await gateway.save_card(request)


@router.post(
    "/mutations/inactivate-account-card",
    response_model=CardResponse,
    summary="Inactivate a card",
)
async def inactivate_account_card(
    request: CardRef,
    gateway: QueryGateway = Depends(get_gateway),
):
    return await gateway.inactivate_card(request)


@router.post(
    "/mutations/activate-account-card",
    response_model=CardResponse,
    summary="Activate a card and inactivate its siblings",
)
async def activate_account_card(
    request: CardRef,
    gateway: QueryGateway = Depends(get_gateway),
):
    return await gateway.activate_card(request.account_id, request.card_id)
