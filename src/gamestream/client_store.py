"""Paired client records."""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass
class PairedClient:
    """A client device that completed pairing."""

    client_id: str
    cert_pem: bytes  # client certificate presented during pairing
    paired_at: str  # ISO format


class ClientStore(Protocol):
    """Protocol for paired client storage."""

    async def add_client(self, client_id: str, cert_pem: bytes) -> None:
        """Record a newly paired client."""
        ...

    async def remove(self, client_id: str) -> bool:
        """Forget a paired client."""
        ...

    def is_paired(self, client_id: str) -> bool:
        """Check if a client is paired."""
        ...


class MemoryClientStore:
    """In-process client storage.

    Persistence is left to the embedding host; this store keeps records
    for the lifetime of the process.
    """

    def __init__(self) -> None:
        self._clients: dict[str, PairedClient] = {}

    async def add_client(self, client_id: str, cert_pem: bytes) -> None:
        """Add or replace a paired client.

        This method matches the ClientStore protocol expected by PairingManager.

        Args:
            client_id: Client's unique identifier.
            cert_pem: Client certificate (PEM).
        """
        self._clients[client_id] = PairedClient(
            client_id=client_id,
            cert_pem=cert_pem,
            paired_at=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        )
        logger.debug(f"Stored paired client {client_id[:8]}...")

    async def remove(self, client_id: str) -> bool:
        """Remove a client.

        Returns:
            True if client was removed, False if not found.
        """
        return self._clients.pop(client_id, None) is not None

    def get(self, client_id: str) -> Optional[PairedClient]:
        """Get client by ID."""
        return self._clients.get(client_id)

    def is_paired(self, client_id: str) -> bool:
        """Check if client is paired."""
        return client_id in self._clients

    def all(self) -> list[PairedClient]:
        """Get all clients."""
        return list(self._clients.values())

    def __len__(self) -> int:
        return len(self._clients)

    def __contains__(self, client_id: str) -> bool:
        return client_id in self._clients
