import asyncio
import logging
from datetime import datetime, timezone

import pytest

from loyalty_qr.config import IdentityTokenConfig
from loyalty_qr.errors import CustomerNotFoundError, InvalidCustomerIdError
from loyalty_qr.service import StaticQRService
from loyalty_qr.storage import InMemoryStorage, PostgresStorage, StoredStaticQR, create_storage_from_env
from loyalty_qr.token import IdentityTokenIssuer, IdentityTokenVerifier, Invalid, InvalidReason, Valid

SECRET = "service-secret-0123456789-abcdefghijkl"


def make_service(*customer_ids: int) -> StaticQRService:
    config = IdentityTokenConfig(secret_key=SECRET)
    storage = InMemoryStorage()
    for customer_id in customer_ids:
        storage.add_customer(customer_id)
    return StaticQRService(
        storage=storage,
        issuer=IdentityTokenIssuer(config),
        verifier=IdentityTokenVerifier(config),
    )


def test_get_or_create_mints_once_then_reuses() -> None:
    async def run() -> None:
        service = make_service(42)
        first = await service.get_or_create(42)
        second = await service.get_or_create(42)

        assert first.reused is False
        assert second.reused is True
        assert first.customer_id == second.customer_id == "000042"
        assert first.token == second.token
        assert first.image_data_url == second.image_data_url
        assert first.created_at == second.created_at

        stored = await service.storage.get_static_qr(42)
        assert stored is not None
        assert stored.token == first.token
        assert stored.image_data_url.startswith("data:image/png;base64,")

    asyncio.run(run())


def test_stored_token_without_image_is_rerendered_not_reminted() -> None:
    async def run() -> None:
        service = make_service(7)
        minted = service.issuer.mint(7)
        created_at = datetime(2025, 6, 1, tzinfo=timezone.utc)
        await service.storage.save_static_qr(7, token=minted.token, image_data_url=None, created_at=created_at)

        result = await service.get_or_create(7)
        assert result.reused is True
        assert result.token == minted.token
        assert result.created_at == created_at
        assert result.image_data_url.startswith("data:image/png;base64,")

    asyncio.run(run())


def test_regenerate_overwrites_stored_token() -> None:
    async def run() -> None:
        service = make_service(42)
        original = await service.get_or_create(42)
        regenerated = await service.regenerate(42)

        assert regenerated.reused is False
        assert regenerated.token != original.token
        assert (await service.get_or_create(42)).token == regenerated.token
        assert await service.scan(regenerated.token) == Valid("000042")

    asyncio.run(run())


def test_unknown_customer_is_not_created() -> None:
    async def run() -> None:
        service = make_service()
        with pytest.raises(CustomerNotFoundError):
            await service.get_or_create(99)

    asyncio.run(run())


@pytest.mark.parametrize("bad", [0, -3, "42"])
def test_invalid_customer_id_fails_fast(bad) -> None:
    async def run() -> None:
        service = make_service(42)
        with pytest.raises(InvalidCustomerIdError):
            await service.get_or_create(bad)
        with pytest.raises(InvalidCustomerIdError):
            await service.regenerate(bad)

    asyncio.run(run())


def test_scan_returns_tagged_results_and_never_logs_raw_token(caplog) -> None:
    async def run() -> str:
        service = make_service(42)
        token = (await service.get_or_create(42)).token
        with caplog.at_level(logging.INFO, logger="loyalty_qr"):
            assert await service.scan(token) == Valid("000042")
            rejected = await service.scan(token[:-2] + "zz")
            assert rejected == Invalid(InvalidReason.MALFORMED_OR_BAD_SIGNATURE)
            assert await service.scan(None) == Invalid(InvalidReason.MALFORMED_OR_BAD_SIGNATURE)
        return token

    token = asyncio.run(run())
    assert "malformed_or_bad_signature" in caplog.text
    assert token not in caplog.text
    assert SECRET not in caplog.text


def test_create_storage_from_env(monkeypatch) -> None:
    monkeypatch.delenv("LOYALTY_QR_PG_DSN", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)
    assert isinstance(create_storage_from_env(), InMemoryStorage)

    monkeypatch.setenv("DATABASE_URL", "postgresql://loyalty@localhost/loyalty")
    storage = create_storage_from_env()
    assert isinstance(storage, PostgresStorage)
    assert storage.dsn == "postgresql://loyalty@localhost/loyalty"


def test_postgres_storage_requires_dsn_or_pool() -> None:
    async def run() -> None:
        with pytest.raises(ValueError):
            await PostgresStorage().connect()

    asyncio.run(run())


def test_from_env_wires_memory_storage(monkeypatch) -> None:
    for name in ("LOYALTY_QR_PG_DSN", "DATABASE_URL", "LOYALTY_QR_ENV", "APP_ENV"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("LOYALTY_QR_SECRET", SECRET)

    service = StaticQRService.from_env()
    assert isinstance(service.storage, InMemoryStorage)
    assert service.issuer.config == service.verifier.config


def test_old_token_is_rejected_after_regenerate(caplog) -> None:
    async def run() -> None:
        service = make_service(42)
        original = await service.get_or_create(42)
        assert await service.scan(original.token) == Valid("000042")

        regenerated = await service.regenerate(42)
        with caplog.at_level(logging.WARNING, logger="loyalty_qr"):
            assert await service.scan(original.token) == Invalid(InvalidReason.MALFORMED_OR_BAD_SIGNATURE)
        assert await service.scan(regenerated.token) == Valid("000042")

    asyncio.run(run())
    assert "superseded" in caplog.text


def test_scan_rejects_well_signed_token_never_stored() -> None:
    async def run() -> None:
        service = make_service(42, 43)
        await service.get_or_create(42)
        stray = service.issuer.mint(42)
        unknown = service.issuer.mint(77)

        assert service.verifier.verify(stray.token) == Valid("000042")
        assert await service.scan(stray.token) == Invalid(InvalidReason.MALFORMED_OR_BAD_SIGNATURE)
        assert await service.scan(unknown.token) == Invalid(InvalidReason.MALFORMED_OR_BAD_SIGNATURE)
        assert await service.scan((await service.get_or_create(43)).token) == Valid("000043")

    asyncio.run(run())


class StaleReadStorage(InMemoryStorage):
    """Reports no token on the first read, as a concurrent first request would see it."""

    def __init__(self) -> None:
        super().__init__()
        self.stale_reads = 1

    async def get_static_qr(self, customer_id: int):
        stored = await super().get_static_qr(customer_id)
        if self.stale_reads and stored is not None:
            self.stale_reads -= 1
            return StoredStaticQR(customer_id=customer_id, token=None, image_data_url=None, created_at=None)
        return stored


def test_racing_first_mint_keeps_the_stored_token() -> None:
    async def run() -> None:
        config = IdentityTokenConfig(secret_key=SECRET)
        storage = StaleReadStorage()
        storage.add_customer(42)
        winner = IdentityTokenIssuer(config).mint(42)
        await storage.save_static_qr(
            42, token=winner.token, image_data_url=winner.image.data_url, created_at=winner.created_at
        )
        service = StaticQRService(
            storage=storage,
            issuer=IdentityTokenIssuer(config),
            verifier=IdentityTokenVerifier(config),
        )

        result = await service.get_or_create(42)
        assert result.token == winner.token
        assert result.reused is True
        assert (await storage.get_static_qr(42)).token == winner.token
        assert await service.scan(result.token) == Valid("000042")

    asyncio.run(run())


def test_conditional_save_does_not_overwrite_existing_token() -> None:
    async def run() -> None:
        storage = InMemoryStorage()
        storage.add_customer(5)
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)

        assert await storage.save_static_qr(5, token="first", image_data_url=None, created_at=now, only_if_unset=True)
        assert not await storage.save_static_qr(5, token="second", image_data_url=None, created_at=now, only_if_unset=True)
        assert (await storage.get_static_qr(5)).token == "first"

        assert await storage.save_static_qr(5, token="third", image_data_url=None, created_at=now)
        assert (await storage.get_static_qr(5)).token == "third"

        with pytest.raises(CustomerNotFoundError):
            await storage.save_static_qr(6, token="x", image_data_url=None, created_at=now, only_if_unset=True)

    asyncio.run(run())
