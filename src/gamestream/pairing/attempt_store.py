"""In-memory store of pending pairing attempts.

Attempts are keyed by client id. Each client has its own lock so that
requests for the same attempt run one at a time, while different
clients pair concurrently. A lock only exists while some request holds
or waits on it.
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

from gamestream.errors import AttemptExpired, ProtocolOutOfOrder
from gamestream.pairing.session import PairingAttempt

logger = logging.getLogger(__name__)


class AttemptStore:
    """Pending pairing attempts with expiry."""

    def __init__(self, timeout: float = 300.0):
        """Initialize attempt store.

        Args:
            timeout: Seconds after creation when an attempt expires.
        """
        self.timeout = timeout
        self._attempts: Dict[str, PairingAttempt] = {}
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    @asynccontextmanager
    async def locked(self, client_id: str) -> AsyncIterator[None]:
        """Serialize requests for a client.

        The lock is dropped when its last holder or waiter leaves, so
        unknown client ids leave nothing behind.
        """
        lock = self._locks.get(client_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[client_id] = lock
        self._lock_users[client_id] = self._lock_users.get(client_id, 0) + 1

        try:
            async with lock:
                yield
        finally:
            self._lock_users[client_id] -= 1
            if self._lock_users[client_id] == 0:
                del self._lock_users[client_id]
                del self._locks[client_id]

    @property
    def lock_count(self) -> int:
        """Number of clients with a request in flight."""
        return len(self._locks)

    def create(self, attempt: PairingAttempt) -> None:
        """Store a new attempt, discarding any previous one for the client."""
        previous = self._attempts.pop(attempt.client_id, None)
        if previous is not None:
            logger.info(f"Replacing pending attempt for {attempt.client_id[:8]}...")
            previous.wipe()
        self._attempts[attempt.client_id] = attempt

    def get(self, client_id: str, now: float | None = None) -> PairingAttempt:
        """Get the live attempt for a client.

        Raises:
            ProtocolOutOfOrder: If the client has no pending attempt.
            AttemptExpired: If the attempt outlived the timeout. It is
                discarded before raising.
        """
        attempt = self._attempts.get(client_id)
        if attempt is None:
            raise ProtocolOutOfOrder("No pending pairing attempt")

        if attempt.is_expired(self.timeout, now):
            self.delete(client_id)
            raise AttemptExpired("Pairing attempt expired")

        return attempt

    def update(self, attempt: PairingAttempt) -> None:
        """Replace the stored attempt with its next state.

        The superseded state is wiped.

        Raises:
            ProtocolOutOfOrder: If the attempt was discarded meanwhile.
        """
        previous = self._attempts.get(attempt.client_id)
        if previous is None:
            raise ProtocolOutOfOrder("No pending pairing attempt")

        self._attempts[attempt.client_id] = attempt
        if previous is not attempt:
            previous.wipe()

    def delete(self, client_id: str) -> Optional[PairingAttempt]:
        """Discard a client's attempt and wipe its key material."""
        attempt = self._attempts.pop(client_id, None)
        if attempt is not None:
            attempt.wipe()
        return attempt

    def peek(self, client_id: str) -> Optional[PairingAttempt]:
        """Get an attempt without expiry checks."""
        return self._attempts.get(client_id)

    def purge_expired(self, now: float | None = None) -> int:
        """Discard every expired attempt.

        Returns:
            Number of attempts discarded.
        """
        if now is None:
            now = time.time()

        expired = [
            client_id
            for client_id, attempt in self._attempts.items()
            if attempt.is_expired(self.timeout, now)
        ]
        for client_id in expired:
            self.delete(client_id)

        if expired:
            logger.info(f"Purged {len(expired)} expired pairing attempts")
        return len(expired)

    def clear(self) -> None:
        for client_id in list(self._attempts):
            self.delete(client_id)

    def __len__(self) -> int:
        return len(self._attempts)

    def __contains__(self, client_id: str) -> bool:
        return client_id in self._attempts
