"""Storage adapters for persisted static QR tokens."""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

import asyncpg

from .errors import CustomerNotFoundError


@dataclass(frozen=True)
class StoredStaticQR:
    """Token and cached image persisted against a customer record."""

    customer_id: int
    token: Optional[str]
    image_data_url: Optional[str]
    created_at: Optional[datetime]


class StaticQRStorage(ABC):
    """Abstract storage backend for per-customer static QR tokens."""

    @abstractmethod
    async def get_static_qr(self, customer_id: int) -> Optional[StoredStaticQR]:
        """Fetch the stored QR for a customer, or None if the customer is unknown."""

    @abstractmethod
    async def save_static_qr(
        self,
        customer_id: int,
        *,
        token: str,
        image_data_url: Optional[str],
        created_at: datetime,
        only_if_unset: bool = False,
    ) -> bool:
        """Store the QR for an existing customer and return whether it was written.

        With ``only_if_unset`` the write is skipped when the customer already holds a
        token, so concurrent first mints cannot overwrite each other.
        """

    async def close(self) -> None:
        """Close backend resources if needed."""


class InMemoryStorage(StaticQRStorage):
    """In-memory storage fallback backend.

    Customers must be registered with :meth:`add_customer` before a QR can be saved,
    mirroring the existing ``users`` row the Postgres backend updates.
    """

    def __init__(self) -> None:
        self.records: dict[int, StoredStaticQR] = {}

    def add_customer(self, customer_id: int) -> None:
        self.records.setdefault(
            customer_id, StoredStaticQR(customer_id=customer_id, token=None, image_data_url=None, created_at=None)
        )

    async def get_static_qr(self, customer_id: int) -> Optional[StoredStaticQR]:
        return self.records.get(customer_id)

    async def save_static_qr(
        self,
        customer_id: int,
        *,
        token: str,
        image_data_url: Optional[str],
        created_at: datetime,
        only_if_unset: bool = False,
    ) -> bool:
        current = self.records.get(customer_id)
        if current is None:
            raise CustomerNotFoundError(f"Customer {customer_id} not found.")
        if only_if_unset and current.token:
            return False
        self.records[customer_id] = StoredStaticQR(
            customer_id=customer_id,
            token=token,
            image_data_url=image_data_url,
            created_at=created_at,
        )
        return True


class PostgresStorage(StaticQRStorage):
    """Postgres-backed storage on the ``users`` table using asyncpg."""

    def __init__(self, dsn: Optional[str] = None, *, pool: Optional[asyncpg.Pool] = None) -> None:
        self.dsn = dsn
        self.pool = pool

    async def connect(self) -> None:
        if self.pool is not None:
            return
        if not self.dsn:
            raise ValueError("Either `dsn` or `pool` must be provided for PostgresStorage.")
        self.pool = await asyncpg.create_pool(dsn=self.dsn, min_size=1, max_size=4)

    async def close(self) -> None:
        if self.pool is not None:
            await self.pool.close()
            self.pool = None

    async def get_static_qr(self, customer_id: int) -> Optional[StoredStaticQR]:
        await self.connect()
        assert self.pool is not None
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                "SELECT id, static_qr_code, static_qr_image, static_qr_created_at FROM users WHERE id=$1",
                customer_id,
            )
            if row is None:
                return None
            return StoredStaticQR(
                customer_id=row["id"],
                token=row["static_qr_code"] or None,
                image_data_url=row["static_qr_image"] or None,
                created_at=row["static_qr_created_at"],
            )

    async def save_static_qr(
        self,
        customer_id: int,
        *,
        token: str,
        image_data_url: Optional[str],
        created_at: datetime,
        only_if_unset: bool = False,
    ) -> bool:
        await self.connect()
        assert self.pool is not None
        async with self.pool.acquire() as conn:
            status = await conn.execute(
                """
                UPDATE users
                SET static_qr_code = $1, static_qr_image = $2, static_qr_created_at = $3
                WHERE id = $4
                  AND (NOT $5::boolean OR static_qr_code IS NULL OR static_qr_code = '')
                """,
                token,
                image_data_url,
                created_at,
                customer_id,
                only_if_unset,
            )
            if status != "UPDATE 0":
                return True
            exists = await conn.fetchval("SELECT 1 FROM users WHERE id=$1", customer_id)
        if exists is None:
            raise CustomerNotFoundError(f"Customer {customer_id} not found.")
        return False


def create_storage_from_env() -> StaticQRStorage:
    """Create Postgres storage if env configured, otherwise in-memory."""
    dsn = os.getenv("LOYALTY_QR_PG_DSN") or os.getenv("DATABASE_URL")
    if dsn:
        return PostgresStorage(dsn=dsn)
    return InMemoryStorage()
