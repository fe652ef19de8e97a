"""
Accounts router — bank account queries and mutations.

Endpoints (all require "Authorization: Bearer <token>"):
    GET  /queries/bank-accounts           — All accounts of a bank
    GET  /queries/bank-account            — One account
    GET  /queries/bank-account-balance    — Stored vs recomputed balance
    POST /mutations/save-bank-account     — Create an account
    POST /mutations/update-bank-account   — Edit an account (optional balance override)

Nested fields:
  Account queries accept a repeatable "expand" parameter naming the nested
  fields to resolve: active_card, transactions, transactions.card, bank.
  Nested fields are resolved for all returned accounts together, one batch
  per field, so listing N accounts never costs N store round trips.
"""

from fastapi import APIRouter, Depends, Query, status

from ledger_api.gateway import QueryGateway
from ledger_api.dependencies import get_gateway
from ledger_api.models.bank_account import BankAccount
from ledger_api.schemas.account import BalanceCheckResponse, BankAccountInput, BankAccountResponse
from ledger_api.schemas.card import CardResponse
from ledger_api.schemas.transaction import TransactionResponse

router = APIRouter()

ACCOUNT_EXPANSIONS = {"active_card", "transactions", "transactions.card", "bank"}


async def render_accounts(
    gateway: QueryGateway,
    accounts: list[BankAccount],
    expand: set[str],
) -> list[BankAccountResponse]:
    """Convert accounts to responses, resolving the requested nested fields."""
    views = [BankAccountResponse.model_validate(account) for account in accounts]

    if "active_card" in expand:
        cards = await gateway.active_cards(accounts)
        for view, card in zip(views, cards):
            view.active_card = CardResponse.model_validate(card) if card else None

    if "transactions" in expand or "transactions.card" in expand:
        per_account = await gateway.transactions_for(accounts)
        all_txns = [txn for txns in per_account for txn in txns]
        if "transactions.card" in expand:
            cards = await gateway.transaction_cards(all_txns)
            txn_cards = {
                (txn.account_id, txn.transaction_id): card
                for txn, card in zip(all_txns, cards)
            }
        else:
            txn_cards = {}
        for view, txns in zip(views, per_account):
            view.transactions = []
            for txn in txns:
                txn_view = TransactionResponse.model_validate(txn)
                card = txn_cards.get((txn.account_id, txn.transaction_id))
                txn_view.card = CardResponse.model_validate(card) if card else None
                view.transactions.append(txn_view)

    if "bank" in expand:
        banks = await gateway.banks(accounts)
        for view, bank in zip(views, banks):
            view.bank = bank

    return views


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

@router.get(
    "/queries/bank-accounts",
    response_model=list[BankAccountResponse],
    summary="List the accounts of a bank",
)
async def bank_accounts(
    bank_id: str,
    expand: list[str] = Query(default=[]),
    gateway: QueryGateway = Depends(get_gateway),
):
    expand = gateway.check_expand(expand, ACCOUNT_EXPANSIONS)
    accounts = await gateway.list_accounts_for_bank(bank_id)
    return await render_accounts(gateway, accounts, expand)


@router.get(
    "/queries/bank-account",
    response_model=BankAccountResponse,
    summary="Get one account",
)
async def bank_account(
    bank_id: str,
    account_id: str,
    expand: list[str] = Query(default=[]),
    gateway: QueryGateway = Depends(get_gateway),
):
    """Returns 404 if there is no account at (bank_id, account_id)."""
    expand = gateway.check_expand(expand, ACCOUNT_EXPANSIONS)
    account = await gateway.get_account(bank_id, account_id)
    return (await render_accounts(gateway, [account], expand))[0]


@router.get(
    "/queries/bank-account-balance",
    response_model=BalanceCheckResponse,
    summary="Compare the stored balance with the transaction history",
)
async def bank_account_balance(
    bank_id: str,
    account_id: str,
    gateway: QueryGateway = Depends(get_gateway),
):
    """
    Recompute the balance by folding the account's transactions onto its
    opening balance, and report whether it matches the stored balance.
    """
    return await gateway.check_balance(bank_id, account_id)


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------

@router.post(
    "/mutations/save-bank-account",
    response_model=BankAccountResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a bank account",
)
async def save_bank_account(
    request: BankAccountInput,
    gateway: QueryGateway = Depends(get_gateway),
):
    """
    Create an account under bank_id. A new account_id is always generated;
    any account_id in the body is ignored. current_balance, if given,
    becomes the opening balance.
    """
    return await gateway.save_account(request)


@router.post(
    "/mutations/update-bank-account",
    response_model=BankAccountResponse,
    summary="Update a bank account",
)
async def update_bank_account(
    request: BankAccountInput,
    gateway: QueryGateway = Depends(get_gateway),
):
    """
    Overwrite name, type and last4 of an existing account. When
    current_balance is present it replaces the stored balance outright.
    """
    return await gateway.update_account(request)
