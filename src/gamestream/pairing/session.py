"""Pairing attempt state machine.

Represents one in-progress handshake for a single client, with state
transitions and expiry handling.
"""

import time
from dataclasses import dataclass, field, replace
from enum import Enum, auto
from typing import Optional


class PairingPhase(Enum):
    """Pairing attempt states."""

    AWAITING_CLIENT_CHALLENGE = auto()  # phase 1 done
    AWAITING_SERVER_RESPONSE = auto()  # phase 2 done
    AWAITING_CLIENT_HASH = auto()  # phase 3 done
    PAIRED = auto()
    REJECTED = auto()


_VALID_TRANSITIONS = {
    PairingPhase.AWAITING_CLIENT_CHALLENGE: {
        PairingPhase.AWAITING_SERVER_RESPONSE,
        PairingPhase.REJECTED,
    },
    PairingPhase.AWAITING_SERVER_RESPONSE: {
        PairingPhase.AWAITING_CLIENT_HASH,
        PairingPhase.REJECTED,
    },
    PairingPhase.AWAITING_CLIENT_HASH: {PairingPhase.PAIRED, PairingPhase.REJECTED},
    PairingPhase.PAIRED: set(),
    PairingPhase.REJECTED: set(),
}


@dataclass
class PairingAttempt:
    """State kept between the phases of one pairing attempt.

    Attributes:
        client_id: Identifier supplied by the client device.
        shared_key: 16-byte AES key derived from PIN and salt.
        client_cert_pem: Client certificate presented in phase 1.
        created_at: Unix timestamp when the attempt started.
        phase: Current state.
        server_secret: 16 random bytes (set in phase 2).
        server_challenge: 16 random bytes (set in phase 2).
        client_hash: 32-byte hash from the client (set in phase 3).
    """

    client_id: str
    shared_key: bytes
    client_cert_pem: bytes = b""
    created_at: float = field(default_factory=time.time)
    phase: PairingPhase = PairingPhase.AWAITING_CLIENT_CHALLENGE

    server_secret: Optional[bytes] = None
    server_challenge: Optional[bytes] = None
    client_hash: Optional[bytes] = None

    @property
    def is_terminal(self) -> bool:
        return self.phase in (PairingPhase.PAIRED, PairingPhase.REJECTED)

    def is_expired(self, timeout: float, now: float | None = None) -> bool:
        """Check if the attempt outlived its expiry window.

        Args:
            timeout: Expiry window in seconds.
            now: Current time, defaults to ``time.time()``.
        """
        if now is None:
            now = time.time()
        return now - self.created_at > timeout

    def advance(self, new_phase: PairingPhase, **changes) -> "PairingAttempt":
        """Return a copy moved to ``new_phase`` with ``changes`` applied.

        Raises:
            ValueError: If transition is not valid from current phase.
        """
        if new_phase not in _VALID_TRANSITIONS[self.phase]:
            raise ValueError(f"Invalid transition: {self.phase} -> {new_phase}")
        return replace(self, phase=new_phase, **changes)

    def wipe(self) -> None:
        """Zero key material once the attempt ends."""
        self.shared_key = b"\x00" * len(self.shared_key)
        if self.server_secret is not None:
            self.server_secret = b"\x00" * len(self.server_secret)
        if self.server_challenge is not None:
            self.server_challenge = b"\x00" * len(self.server_challenge)
        if self.client_hash is not None:
            self.client_hash = b"\x00" * len(self.client_hash)
