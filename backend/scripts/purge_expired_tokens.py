"""Delete expired verification tokens.

Standalone maintenance script, safe to run from cron. Expired tokens are
already unusable; this only keeps the table small.

Usage:
    cd backend && python -m scripts.purge_expired_tokens
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from dashboard.repositories.verification_token_repository import (
    VerificationTokenRepository,
)

logger = logging.getLogger(__name__)


async def purge_expired_tokens(session: AsyncSession) -> int:
    """Delete every expired token and commit.

    Args:
        session: Active async database session.

    Returns:
        Number of deleted rows.
    """
    deleted = await VerificationTokenRepository.delete_expired(session)
    await session.commit()
    logger.info("Deleted %d expired verification tokens", deleted)
    return deleted


async def main() -> None:
    """CLI entry point: purge against the configured database."""
    from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine

    from dashboard.core.config import settings

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    engine = create_async_engine(settings.database_url, echo=False)
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async with factory() as session:
        await purge_expired_tokens(session)

    await engine.dispose()


if __name__ == "__main__":
    import asyncio

    asyncio.run(main())
