"""
Persistence for accounts and daily intent snapshots.

Snapshot writes for one (account, date) are serialised in-process by a
keyed asyncio lock and land as a single INSERT ... ON CONFLICT DO UPDATE,
so concurrent recomputes of the same account never create two rows.
Across processes the latest write of the day wins.
"""
from __future__ import annotations

import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import date
from typing import Any, Hashable, Optional

import structlog
from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.ext.asyncio import AsyncSession

from abm_engine.core.domains import account_name_from_domain
from abm_engine.models.account_intent import DailyAccountIntent, ProspectCompany
from abm_engine.models.database import new_uuid, utcnow

logger = structlog.get_logger()

SNAPSHOT_CONFLICT_COLUMNS = ["prospect_company_id", "date"]


class KeyedLocks:
    """One asyncio.Lock per key, dropped again once nobody holds or waits on it."""

    def __init__(self):
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._users: dict[Hashable, int] = defaultdict(int)

    @asynccontextmanager
    async def hold(self, key: Hashable):
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] += 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] <= 0:
                del self._users[key]
                self._locks.pop(key, None)

    def __len__(self) -> int:
        return len(self._locks)


SNAPSHOT_LOCKS = KeyedLocks()


def _insert_for(session: AsyncSession):
    dialect = session.bind.dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    raise NotImplementedError(f"Upsert not supported for dialect {dialect!r}")


class IntentRepository:
    def __init__(self, session: AsyncSession):
        self.session = session

    # ── Accounts ──

    async def get_account(self, account_id: str) -> Optional[ProspectCompany]:
        return await self.session.get(ProspectCompany, account_id)

    async def find_account_by_domain(self, domain: str) -> Optional[ProspectCompany]:
        result = await self.session.execute(
            select(ProspectCompany).where(ProspectCompany.domain == domain)
        )
        return result.scalar_one_or_none()

    async def find_or_create_account(self, domain: str) -> tuple[ProspectCompany, bool]:
        """Returns (account, created). Unknown domains become accounts with score 0."""
        existing = await self.find_account_by_domain(domain)
        if existing is not None:
            return existing, False

        insert = _insert_for(self.session)
        stmt = (
            insert(ProspectCompany)
            .values(
                id=new_uuid(),
                domain=domain,
                name=account_name_from_domain(domain),
                intent_score=0,
                created_at=utcnow(),
            )
            .on_conflict_do_nothing(index_elements=["domain"])
        )
        result = await self.session.execute(stmt)
        account = await self.find_account_by_domain(domain)
        created = bool(result.rowcount)
        if created:
            logger.info("account_created", domain=domain, account_id=account.id)
        return account, created

    async def update_account_projection(self, account_id: str, fields: dict[str, Any]) -> None:
        await self.session.execute(
            update(ProspectCompany)
            .where(ProspectCompany.id == account_id)
            .values(**fields)
            .execution_options(synchronize_session=False)
        )

    # ── Snapshots ──

    async def find_snapshot(self, account_id: str, snapshot_date: date) -> Optional[DailyAccountIntent]:
        result = await self.session.execute(
            select(DailyAccountIntent).where(
                DailyAccountIntent.prospect_company_id == account_id,
                DailyAccountIntent.date == snapshot_date,
            )
        )
        return result.scalar_one_or_none()

    async def list_snapshots(self, account_id: str, limit: int = 30) -> list[DailyAccountIntent]:
        result = await self.session.execute(
            select(DailyAccountIntent)
            .where(DailyAccountIntent.prospect_company_id == account_id)
            .order_by(DailyAccountIntent.date.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def upsert_snapshot(self, account_id: str, snapshot_date: date, fields: dict[str, Any]) -> None:
        """Create the day's row, or replace every snapshot field of it."""
        now = utcnow()
        insert = _insert_for(self.session)
        stmt = insert(DailyAccountIntent).values(
            id=new_uuid(),
            prospect_company_id=account_id,
            date=snapshot_date,
            created_at=now,
            updated_at=now,
            **fields,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=SNAPSHOT_CONFLICT_COLUMNS,
            set_={**fields, "updated_at": now},
        )
        await self.session.execute(stmt)
