"""Pairing manager orchestrates the complete pairing flow.

The transport layer calls one method per pairing request. The manager
keeps each client's attempt between requests, expires abandoned ones,
and records clients that pair successfully.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Dict, Optional

from gamestream.client_store import ClientStore
from gamestream.config import Config
from gamestream.errors import PairingError
from gamestream.identity import HostIdentity, load_or_generate
from gamestream.pairing import handshake
from gamestream.pairing.attempt_store import AttemptStore
from gamestream.pairing.response import PairingResponse
from gamestream.pairing.session import PairingAttempt, PairingPhase

logger = logging.getLogger(__name__)

Step = Callable[[PairingAttempt], handshake.Transition]


class PairingManager:
    """Runs pairing attempts for many clients against one host identity."""

    def __init__(
        self,
        identity: HostIdentity,
        client_store: ClientStore,
        attempt_timeout: float = 300.0,
    ):
        """Initialize pairing manager.

        Args:
            identity: Host certificate and key, shared by all attempts.
            client_store: Storage for paired clients.
            attempt_timeout: Seconds before a pending attempt expires.
        """
        self.identity = identity
        self.client_store = client_store
        self.attempts = AttemptStore(timeout=attempt_timeout)

        self._expiry_tasks: Dict[str, asyncio.Task] = {}
        self._on_pairing_complete: Optional[Callable[[str], Awaitable[None]]] = None

    @classmethod
    def from_config(
        cls,
        config: Config,
        client_store: ClientStore,
        identity: Optional[HostIdentity] = None,
    ) -> "PairingManager":
        """Create a manager wired from configuration.

        Args:
            config: Host configuration.
            client_store: Storage for paired clients.
            identity: Host identity. Loaded or generated from
                config.identity when not given.

        Returns:
            Configured PairingManager.
        """
        if identity is None:
            identity = load_or_generate(config.identity)

        return cls(
            identity=identity,
            client_store=client_store,
            attempt_timeout=config.pairing.attempt_timeout,
        )

    async def get_server_cert(
        self,
        client_id: str,
        pin: str,
        salt: bytes,
        client_cert_pem: bytes,
    ) -> PairingResponse:
        """Phase 1: start a new attempt.

        Any attempt already pending for the client is discarded.

        Args:
            client_id: Client's unique identifier.
            pin: PIN entered by the user on the host.
            salt: Salt sent by the client.
            client_cert_pem: Client certificate (PEM).

        Returns:
            Response carrying the host certificate.
        """
        async with self.attempts.locked(client_id):
            attempt, response = handshake.start(
                client_id, pin, salt, client_cert_pem, self.identity
            )
            self.attempts.create(attempt)
            self._schedule_expiry(client_id)

        logger.info(f"Pairing attempt started: {client_id[:8]}...")
        return response

    async def client_challenge(
        self,
        client_id: str,
        client_challenge: bytes,
        server_secret: bytes | None = None,
        server_challenge: bytes | None = None,
    ) -> PairingResponse:
        """Phase 2: answer the encrypted client challenge."""
        return await self._advance(
            client_id,
            lambda attempt: handshake.receive_client_challenge(
                attempt,
                client_challenge,
                self.identity,
                server_secret=server_secret,
                server_challenge=server_challenge,
            ),
        )

    async def server_challenge_resp(
        self, client_id: str, server_challenge_resp: bytes
    ) -> PairingResponse:
        """Phase 3: take the encrypted client hash, reveal our secret."""
        return await self._advance(
            client_id,
            lambda attempt: handshake.receive_server_challenge_resp(
                attempt, server_challenge_resp, self.identity
            ),
        )

    async def client_pairing_secret(
        self, client_id: str, client_pairing_secret: bytes
    ) -> PairingResponse:
        """Phase 4: verify the client and pair it on success."""
        return await self._advance(
            client_id,
            lambda attempt: handshake.receive_client_pairing_secret(
                attempt, client_pairing_secret
            ),
        )

    async def _advance(self, client_id: str, step: Step) -> PairingResponse:
        """Apply one transition to the client's attempt under its lock."""
        async with self.attempts.locked(client_id):
            try:
                attempt = self.attempts.get(client_id)
            except PairingError as e:
                logger.warning(
                    f"Pairing request rejected for {client_id[:8]}...: "
                    f"{type(e).__name__}"
                )
                self._cancel_expiry(client_id)
                return PairingResponse.unpaired()

            attempt, response = step(attempt)

            if attempt.phase == PairingPhase.REJECTED:
                self._discard(client_id)
                attempt.wipe()
            elif attempt.phase == PairingPhase.PAIRED:
                try:
                    await self._finalize_pairing(attempt)
                finally:
                    self._discard(client_id)
                    attempt.wipe()
            else:
                self.attempts.update(attempt)

            return response

    async def _finalize_pairing(self, attempt: PairingAttempt) -> None:
        """Record the newly paired client."""
        await self.client_store.add_client(attempt.client_id, attempt.client_cert_pem)
        logger.info(f"Client paired: {attempt.client_id[:8]}...")

        if self._on_pairing_complete:
            await self._on_pairing_complete(attempt.client_id)

    def _discard(self, client_id: str) -> None:
        self._cancel_expiry(client_id)
        self.attempts.delete(client_id)

    def _schedule_expiry(self, client_id: str) -> None:
        self._cancel_expiry(client_id)
        self._expiry_tasks[client_id] = asyncio.create_task(
            self._attempt_timeout(client_id)
        )

    def _cancel_expiry(self, client_id: str) -> None:
        task = self._expiry_tasks.pop(client_id, None)
        if task is not None and task is not asyncio.current_task():
            task.cancel()

    async def _attempt_timeout(self, client_id: str) -> None:
        """Discard an attempt the client never completed."""
        await asyncio.sleep(self.attempts.timeout)

        async with self.attempts.locked(client_id):
            # A newer attempt reschedules; its timer owns the slot
            if self._expiry_tasks.get(client_id) is not asyncio.current_task():
                return
            del self._expiry_tasks[client_id]
            if self.attempts.delete(client_id) is not None:
                logger.info(f"Pairing attempt expired: {client_id[:8]}...")

    def on_pairing_complete(self, callback: Callable[[str], Awaitable[None]]) -> None:
        """Register callback for successful pairing.

        Args:
            callback: Async function called with the client id.
        """
        self._on_pairing_complete = callback

    def is_paired(self, client_id: str) -> bool:
        return self.client_store.is_paired(client_id)

    async def unpair(self, client_id: str) -> bool:
        """Forget a client and abandon any attempt in flight.

        Returns:
            True if the client was paired.
        """
        async with self.attempts.locked(client_id):
            self._discard(client_id)
            removed = await self.client_store.remove(client_id)

        if removed:
            logger.info(f"Client unpaired: {client_id[:8]}...")
        return removed

    async def stop(self) -> None:
        """Cancel timers and discard every pending attempt."""
        tasks = list(self._expiry_tasks.values())
        self._expiry_tasks.clear()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

        self.attempts.clear()
        logger.info("Pairing manager stopped")
