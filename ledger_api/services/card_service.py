"""
Card service — card creation and the active-flag lifecycle.

State machine for Card.active:

    save_card(active=...)   initial state, stored exactly as given
    inactivate_card         active -> inactive, this card only
    activate_card           any    -> active, every sibling -> inactive

save_card() never looks at other cards, so saving two active cards for the
same account is possible; get_active_card() then returns one of them, with
no promise about which. activate_card() is the operation that restores the
one-active-card rule, in a single UPDATE so no reader can observe two
active cards or none in between.

The CVV is Fernet-encrypted before it reaches the store.
"""

import logging
import uuid
from dataclasses import dataclass

from ledger_api.exceptions import NotFoundError
from ledger_api.models.card import Card
from ledger_api.security import CardCipher
from ledger_api.store import AccountStore


logger = logging.getLogger(__name__)


@dataclass
class CardDetails:
    """Validated input for save_card()."""
    account_id: uuid.UUID
    last4: str
    expiry_month: str
    expiry_year: str
    cvv: str
    active: bool = True


async def save_card(
    store: AccountStore,
    cipher: CardCipher,
    details: CardDetails,
) -> Card:
    """
    Store a new card for an account with a freshly generated card_id.

    Sibling cards are left untouched, whatever their active flag.
    """
    card = Card(
        account_id=details.account_id,
        card_id=uuid.uuid4(),
        last4=details.last4,
        expiry_month=details.expiry_month,
        expiry_year=details.expiry_year,
        cvv_encrypted=cipher.encrypt(details.cvv),
        active=details.active,
    )
    await store.put_card(card)
    logger.info(
        "Card saved",
        extra={
            "account_id": str(card.account_id),
            "card_id": str(card.card_id),
            "active": card.active,
        },
    )
    return card


async def inactivate_card(
    store: AccountStore,
    account_id: uuid.UUID,
    card_id: uuid.UUID,
) -> Card:
    """
    Turn off the active flag on exactly one card.

    Raises:
        NotFoundError: If the card doesn't exist.
    """
    if not await store.set_card_active(account_id, card_id, False):
        raise NotFoundError("Card", account_id, card_id)
    logger.info(
        "Card inactivated",
        extra={"account_id": str(account_id), "card_id": str(card_id)},
    )
    return await get_card(store, account_id, card_id)


async def activate_card(
    store: AccountStore,
    account_id: uuid.UUID,
    card_id: uuid.UUID,
) -> Card:
    """
    Make a card the account's only active card.

    Raises:
        NotFoundError: If the card doesn't exist (no sibling is touched).
    """
    await get_card(store, account_id, card_id)
    await store.activate_exclusively(account_id, card_id)
    logger.info(
        "Card activated",
        extra={"account_id": str(account_id), "card_id": str(card_id)},
    )
    return await get_card(store, account_id, card_id)


async def get_active_card(store: AccountStore, account_id: uuid.UUID) -> Card | None:
    """Return the account's active card, or None when it has none."""
    return await store.find_active_card(account_id)


async def list_cards(store: AccountStore, account_id: uuid.UUID) -> list[Card]:
    """List every card of an account, active or not."""
    return await store.query_cards(account_id)


async def get_card(
    store: AccountStore,
    account_id: uuid.UUID,
    card_id: uuid.UUID,
) -> Card:
    """
    Get a single card by its composite key.

    Raises:
        NotFoundError: If the card doesn't exist.
    """
    card = await store.get_card(account_id, card_id)
    if card is None:
        raise NotFoundError("Card", account_id, card_id)
    return card
