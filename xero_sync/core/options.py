"""Persisted key-value options backed by the Prisma ``Option`` model."""

from typing import TYPE_CHECKING, Optional, Protocol

if TYPE_CHECKING:
    from prisma import Prisma


class KeyValueStore(Protocol):
    """Generic persisted key-value backend.

    ``add`` and ``replace`` are atomic so callers can build at-most-once
    guards and compare-and-swap updates on top of them.
    """

    async def get(self, key: str) -> Optional[str]: ...

    async def put(self, key: str, value: str) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def add(self, key: str, value: str) -> bool:
        """Insert ``key`` only if it does not exist yet."""
        ...

    async def replace(self, key: str, expected: str, value: str) -> bool:
        """Set ``key`` to ``value`` only if it currently holds ``expected``."""
        ...


class PrismaKeyValueStore:
    """KeyValueStore implementation over the Prisma ``Option`` table."""

    def __init__(self, db: "Prisma"):
        self.db = db

    async def get(self, key: str) -> Optional[str]:
        row = await self.db.option.find_unique(where={"key": key})
        return row.value if row else None

    async def put(self, key: str, value: str) -> None:
        await self.db.option.upsert(
            where={"key": key},
            data={
                "create": {"key": key, "value": value},
                "update": {"value": value},
            },
        )

    async def delete(self, key: str) -> None:
        await self.db.option.delete_many(where={"key": key})

    async def add(self, key: str, value: str) -> bool:
        # Primary key collision is skipped, so the row count tells who won
        count = await self.db.option.create_many(
            data=[{"key": key, "value": value}], skip_duplicates=True
        )
        return count == 1

    async def replace(self, key: str, expected: str, value: str) -> bool:
        count = await self.db.option.update_many(
            where={"key": key, "value": expected}, data={"value": value}
        )
        return count == 1
