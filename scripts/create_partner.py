#!/usr/bin/env python3
"""Register an API partner and print its credentials.

The client secret is shown once; only its hash is stored.

Usage:
    python scripts/create_partner.py "Acme Corp"
    python scripts/create_partner.py "Acme Corp" --client-id acme
"""

import asyncio
import secrets

from findoc.auth.service import hash_secret
from findoc.db.repository import PartnerRepository
from findoc.db.session import create_engine, create_schema, create_session_factory
from findoc.shared.config import get_settings


async def create_partner(name: str, client_id: str | None = None) -> tuple[str, str, str]:
    """Create a partner.

    Returns:
        Tuple of (partner id, client id, client secret)
    """
    settings = get_settings()
    engine = create_engine(settings)
    try:
        if settings.database_url.startswith("sqlite"):
            await create_schema(engine)

        client_id = client_id or secrets.token_hex(8)
        client_secret = secrets.token_urlsafe(32)
        partners = PartnerRepository(create_session_factory(engine))
        partner = await partners.create(name, client_id, hash_secret(client_secret))
        return partner.id, client_id, client_secret
    finally:
        await engine.dispose()


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Register an API partner")
    parser.add_argument("name", help="Partner display name")
    parser.add_argument(
        "--client-id",
        default=None,
        help="Client id to use (random if omitted)",
    )
    args = parser.parse_args()

    partner_id, client_id, client_secret = asyncio.run(create_partner(args.name, args.client_id))
    print(f"partner_id:    {partner_id}")
    print(f"client_id:     {client_id}")
    print(f"client_secret: {client_secret}")
