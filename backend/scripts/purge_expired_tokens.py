"""Delete expired magic link tokens.

Standalone maintenance script, intended for a periodic job (cron, scheduled
task). Expired tokens are already rejected on use; this only reclaims rows.

Usage:
    cd backend && python -m scripts.purge_expired_tokens
"""

from datetime import UTC, datetime

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from corporate_auth.repositories.credential_store import SqlCredentialStore

logger = structlog.get_logger()


async def purge_expired_tokens(session: AsyncSession, now: datetime | None = None) -> int:
    """Delete every token whose TTL is in the past.

    Args:
        session: Active async database session. The caller commits.
        now: Reference time. Defaults to the current time.

    Returns:
        Number of deleted tokens.
    """
    now_epoch = int((now or datetime.now(UTC)).timestamp())
    deleted = await SqlCredentialStore(session).delete_expired_tokens(now_epoch)
    logger.info("expired_tokens_purged", deleted=deleted, now_epoch=now_epoch)
    return deleted


async def main() -> None:
    """CLI entry point: purge against the configured database."""
    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from corporate_auth.core.config import settings
    from corporate_auth.core.logging import configure_logging

    configure_logging(settings)

    engine = create_async_engine(settings.database_url, echo=False)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with factory() as session:
        await purge_expired_tokens(session)
        await session.commit()

    await engine.dispose()


if __name__ == "__main__":
    import asyncio

    asyncio.run(main())
