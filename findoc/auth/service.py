"""Partner authentication by ``client_id`` / ``client_secret``.

Secrets are stored as SHA-256 hex digests and compared in constant time.
"""

import hashlib
import hmac
import logging

from findoc.db.repository import PartnerRepository
from findoc.shared.errors import AuthError

logger = logging.getLogger(__name__)


def hash_secret(client_secret: str) -> str:
    return hashlib.sha256(client_secret.encode("utf-8")).hexdigest()


class PartnerAuthenticator:
    """Resolves client credentials to a partner id."""

    def __init__(self, partners: PartnerRepository) -> None:
        self.partners = partners

    async def authenticate(self, client_id: str | None, client_secret: str | None) -> str:
        """Verify credentials.

        Returns:
            The partner id

        Raises:
            AuthError: Missing or invalid credentials
        """
        if not client_id or not client_secret:
            raise AuthError("Unauthorized: Missing credentials")

        partner = await self.partners.find_by_client_id(client_id)
        if partner is None or not hmac.compare_digest(partner.client_secret_hash, hash_secret(client_secret)):
            logger.warning(f"Rejected credentials for client_id {client_id}")
            raise AuthError("Unauthorized: Invalid credentials")

        return partner.id
