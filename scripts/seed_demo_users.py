import argparse
import asyncio
import logging
from decimal import Decimal
from typing import List, Tuple

from sqlalchemy.ext.asyncio import async_sessionmaker

from treasury_app.domain.models import User
from treasury_app.domain.services.ledger_service import LedgerService
from treasury_app.infrastructure.db.repositories.user_repository import UserRepository

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s | %(levelname)s | %(name)s | %(message)s')
logger = logging.getLogger(__name__)

# Demo accounts: (name, opening deposit)
DEMO_USERS: List[Tuple[str, Decimal]] = [
    ("Dylan Huff", Decimal("358825.00")),
    ("Sarah Martinez", Decimal("563800.00")),
    ("James Chen", Decimal("484350.00")),
]


async def seed_demo_users(
    session_factory: async_sessionmaker,
    users: List[Tuple[str, Decimal]] = DEMO_USERS,
    force: bool = False,
) -> List[User]:
    """
    Create demo users and fund them through the ledger so every balance has
    a matching fund transaction. Skips seeding when users already exist
    unless `force` is set.
    """
    async with session_factory() as session:
        existing = await UserRepository(session).list_all()
    if existing and not force:
        logger.info(f"{len(existing)} user(s) already present, skipping seed")
        return existing

    ledger = LedgerService(session_factory)
    created: List[User] = []
    for name, deposit in users:
        async with session_factory() as session:
            async with session.begin():
                user = await UserRepository(session).create(name=name)
        if deposit > 0:
            user = await ledger.fund(user.id, deposit)
        logger.info(f"Seeded {user.name} (id={user.id}) with balance {user.balance}")
        created.append(user)
    return created


async def main(force: bool) -> None:
    from treasury_app.infrastructure.db.database import close_db, get_session_factory

    try:
        await seed_demo_users(get_session_factory(), force=force)
    finally:
        await close_db()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed demo users")
    parser.add_argument("--force", action="store_true", help="Seed even if users already exist")
    args = parser.parse_args()

    asyncio.run(main(args.force))
