"""
Key-Value Repository
SQL-backed KeyValueStore: get / upsert / delete by key.
"""

from typing import Optional
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.infrastructure.db.models import KeyValueEntryModel
from app.utils.time import utc_now


class SqlKeyValueStore:
    """KeyValueStore over the key_value_store table; the caller owns the transaction"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _get_entry(self, key: str) -> Optional[KeyValueEntryModel]:
        result = await self.session.execute(
            select(KeyValueEntryModel).where(KeyValueEntryModel.key == key)
        )
        return result.scalar_one_or_none()

    async def get(self, key: str) -> Optional[str]:
        entry = await self._get_entry(key)
        return entry.value if entry else None

    async def set(self, key: str, value: str) -> None:
        existing = await self._get_entry(key)
        if existing:
            existing.value = value
            existing.updated_at = utc_now()
        else:
            self.session.add(KeyValueEntryModel(key=key, value=value, updated_at=utc_now()))
        await self.session.flush()

    async def delete(self, key: str) -> None:
        await self.session.execute(
            delete(KeyValueEntryModel).where(KeyValueEntryModel.key == key)
        )
        await self.session.flush()
