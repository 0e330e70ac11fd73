"""
Seed the administrator account.

The administrator stands in for the platform as counterparty of float
requests; the platform's own ledger books are created on first use.
"""
import asyncio
import os

from sqlalchemy import select

from agentcash.core.config import get_settings
from agentcash.db.models import Account
from agentcash.infrastructure.database.session import build_engine, build_session_factory, init_db
from agentcash.modules.accounts import AccountCreateInput, AccountService, Role


async def create_default_admin() -> None:
    settings = get_settings()
    engine = build_engine(settings)
    await init_db(engine)

    async with build_session_factory(engine)() as db:
        stmt = select(Account).where(Account.role == Role.ADMIN.value)
        result = await db.execute(stmt)
        if result.scalars().first() is not None:
            print("Administrator already exists, nothing to do")
            await engine.dispose()
            return

        password = os.environ.get("AGENTCASH_ADMIN_PASSWORD", "admin123")
        service = AccountService.with_session(db)
        await service.create_account(
            AccountCreateInput(
                username="admin",
                password=password,
                role=Role.ADMIN,
                full_name="Platform",
                is_active=True,
            )
        )
        await db.commit()

    await engine.dispose()
    print("=" * 50)
    print("Administrator account created")
    print("username: admin")
    print("Change the password after the first login.")
    print("=" * 50)


if __name__ == "__main__":
    asyncio.run(create_default_admin())
