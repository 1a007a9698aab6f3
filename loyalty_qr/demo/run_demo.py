"""Run end-to-end static QR demo: mint, reuse, scan, tampered scan and re-mint."""

from __future__ import annotations

import asyncio

from loyalty_qr import IdentityTokenConfig, IdentityTokenIssuer, IdentityTokenVerifier, StaticQRService
from loyalty_qr.storage import InMemoryStorage


async def main() -> None:
    config = IdentityTokenConfig.from_env()
    storage = InMemoryStorage()
    storage.add_customer(42)
    service = StaticQRService(
        storage=storage,
        issuer=IdentityTokenIssuer(config),
        verifier=IdentityTokenVerifier(config),
    )
    try:
        first = await service.get_or_create(42)
        print("MINTED:", first.customer_id, first.token)
        print("IMAGE:", first.image_data_url[:48] + "...")

        again = await service.get_or_create(42)
        print("REUSED:", again.reused, again.token == first.token)

        print("SCAN:", await service.scan(first.token))

        tampered = first.token[:-4] + ("AAAA" if not first.token.endswith("AAAA") else "BBBB")
        rejected = await service.scan(tampered)
        print("TAMPERED SCAN:", rejected, "-", getattr(rejected, "message", ""))

        renewed = await service.regenerate(42)
        print("REGENERATED:", renewed.token != first.token)
        print("OLD TOKEN SCAN:", await service.scan(first.token))
        print("NEW TOKEN SCAN:", await service.scan(renewed.token))
    finally:
        await service.close()


if __name__ == "__main__":
    asyncio.run(main())
