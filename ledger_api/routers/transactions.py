"""
Transactions router — ledger queries and posting.

Endpoints (all require "Authorization: Bearer <token>"):
    GET  /queries/account-transaction   — One transaction
    GET  /queries/account-transactions  — Paginated transaction history
    POST /mutations/save-transaction    — Post a transaction and move the balance

Posting is a single unit of work: the transaction row and the balance
update commit together or not at all.

History pagination uses relay-style cursors (first/after, last/before).
Transactions are ordered by transaction_date, then transaction_id.
"""

from fastapi import APIRouter, Depends, Query, status

from ledger_api.dependencies import get_gateway
from ledger_api.gateway import QueryGateway
from ledger_api.schemas.card import CardResponse
from ledger_api.schemas.transaction import (
    TransactionConnectionResponse,
    TransactionInput,
    TransactionResponse,
)

router = APIRouter()

TRANSACTION_EXPANSIONS = {"card"}


@router.get(
    "/queries/account-transaction",
    response_model=TransactionResponse,
    summary="Get one transaction",
)
async def account_transaction(
    account_id: str,
    transaction_id: str,
    expand: list[str] = Query(default=[]),
    gateway: QueryGateway = Depends(get_gateway),
):
    expand = gateway.check_expand(expand, TRANSACTION_EXPANSIONS)
    txn = await gateway.get_transaction(account_id, transaction_id)
    view = TransactionResponse.model_validate(txn)
    if "card" in expand:
        card = await gateway.transaction_card(txn)
        view.card = CardResponse.model_validate(card) if card else None
    return view


@router.get(
    "/queries/account-transactions",
    response_model=TransactionConnectionResponse,
    summary="Page through an account's transactions",
)
async def account_transactions(
    account_id: str,
    first: int | None = None,
    after: str | None = None,
    last: int | None = None,
    before: str | None = None,
    expand: list[str] = Query(default=[]),
    gateway: QueryGateway = Depends(get_gateway),
):
    """
    Without first/last the whole history comes back in one page.
    total_count is always the size of the full history.
    """
    expand = gateway.check_expand(expand, TRANSACTION_EXPANSIONS)
    connection = await gateway.transactions_connection(
        account_id, first=first, after=after, last=last, before=before,
    )
    response = TransactionConnectionResponse.model_validate(connection)
    if "card" in expand:
        cards = await gateway.transaction_cards(edge.node for edge in connection.edges)
        for edge, card in zip(response.edges, cards):
            edge.node.card = CardResponse.model_validate(card) if card else None
    return response


@router.post(
    "/mutations/save-transaction",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Post a transaction",
)
async def save_transaction(
    bank_id: str,
    request: TransactionInput,
    gateway: QueryGateway = Depends(get_gateway),
):
    """
    Record a DEBIT (adds to the balance) or CREDIT (subtracts) against an
    account of bank_id. A referenced card must exist and be active.
    """
    return await gateway.post_transaction(bank_id, request)
