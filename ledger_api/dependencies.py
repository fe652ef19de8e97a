"""
FastAPI dependencies that build the per-request gateway.

The dependency chain is:

  get_context (app.state -> AppContext)
  get_db      (AppContext -> AsyncSession, one unit of work)
      └── get_gateway (session + context + Authorization header -> QueryGateway)

Route handlers only ever declare get_gateway. The bearer token is NOT
checked here: register and authenticate are open, and every other gateway
operation runs the token gate itself before touching the store. Passing the
raw header through keeps that ordering in one place.
"""

from fastapi import Depends, Header, Request
from sqlalchemy.ext.asyncio import AsyncSession

from ledger_api.app_context import AppContext
from ledger_api.database import get_db
from ledger_api.gateway import QueryGateway
from ledger_api.store import AccountStore


def get_context(request: Request) -> AppContext:
    """The AppContext built at startup by create_app()."""
    return request.app.state.context


async def get_gateway(
    context: AppContext = Depends(get_context),
    db: AsyncSession = Depends(get_db),
    authorization: str | None = Header(default=None),
) -> QueryGateway:
    """
    Build a QueryGateway bound to this request's session and credentials.

    Args:
        context: Process-wide handles (injected by get_context).
        db: Database session (injected by get_db).
        authorization: Raw Authorization header, forwarded unchanged.
    """
    return QueryGateway.from_context(AccountStore(db), context, authorization)
