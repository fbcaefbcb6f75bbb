"""Pairing module for the GameStream host.

Provides the Moonlight PIN pairing handshake including:
- Shared key derivation
- The four pairing phases
- Pairing attempt state and expiry
- Orchestration for a transport layer
"""

from .attempt_store import AttemptStore
from .pairing_manager import PairingManager
from .protocol import (
    begin_pairing,
    commit_secret,
    derive_key,
    get_server_cert,
    issue_challenge,
    verify_and_pair,
)
from .response import PairingResponse
from .session import PairingAttempt, PairingPhase

__all__ = [
    "AttemptStore",
    "PairingAttempt",
    "PairingManager",
    "PairingPhase",
    "PairingResponse",
    "begin_pairing",
    "commit_secret",
    "derive_key",
    "get_server_cert",
    "issue_challenge",
    "verify_and_pair",
]
