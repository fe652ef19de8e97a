"""
Process-wide service handles, built once at startup.

AppContext gathers everything that used to be ambient global state (the
database engine and session factory, the token signing secret, the card
encryption key, the bank service client) into one object. create_app()
builds it from Settings and stores it on app.state.context; the request
dependencies hand it to the gateway explicitly.
"""

from dataclasses import dataclass

import httpx
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from ledger_api.bank_client import BankClient
from ledger_api.config import Settings
from ledger_api.database import create_engine_and_sessionmaker
from ledger_api.security import CardCipher, TokenAuthority


@dataclass
class AppContext:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    tokens: TokenAuthority
    cipher: CardCipher
    bank_client: BankClient

    async def close(self) -> None:
        await self.bank_client.aclose()
        await self.engine.dispose()


def build_context(
    settings: Settings,
    bank_transport: httpx.AsyncBaseTransport | None = None,
) -> AppContext:
    """
    Turn Settings into live service handles.

    Args:
        settings: The startup configuration.
        bank_transport: Optional httpx transport for the bank client.
    """
    engine, session_factory = create_engine_and_sessionmaker(
        settings.DATABASE_URL,
        echo=settings.DEBUG,
    )
    return AppContext(
        settings=settings,
        engine=engine,
        session_factory=session_factory,
        tokens=TokenAuthority(
            secret=settings.AUTH_SECRET,
            algorithm=settings.ALGORITHM,
            ttl_minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES,
        ),
        cipher=CardCipher(settings.CARD_ENCRYPTION_KEY),
        bank_client=BankClient(
            settings.BANK_SERVICE_URL,
            timeout=settings.HTTP_TIMEOUT_SECONDS,
            transport=bank_transport,
        ),
    )
