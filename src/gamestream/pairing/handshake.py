"""Pure pairing transitions.

Each function takes the current attempt and one phase's input and returns
the next attempt together with the response to send. Any failure yields
a ``REJECTED`` attempt and the uniform unpaired response; the caller must
then discard the attempt.
"""

import logging
from dataclasses import replace

from gamestream.crypto import cert_public_key, cert_signature
from gamestream.errors import CryptoError, PairingError, ProtocolOutOfOrder
from gamestream.identity import HostIdentity
from gamestream.pairing import protocol
from gamestream.pairing.response import PairingResponse
from gamestream.pairing.session import PairingAttempt, PairingPhase

logger = logging.getLogger(__name__)

Transition = tuple[PairingAttempt, PairingResponse]


def reject(attempt: PairingAttempt, error: PairingError) -> Transition:
    """Move an attempt to ``REJECTED``, logging why."""
    logger.warning(
        f"Pairing rejected for {attempt.client_id[:8]}...: "
        f"{type(error).__name__}: {error}"
    )
    return replace(attempt, phase=PairingPhase.REJECTED), PairingResponse.unpaired()


def _require(attempt: PairingAttempt, phase: PairingPhase) -> None:
    if attempt.phase != phase:
        raise ProtocolOutOfOrder(f"Expected {phase.name}, attempt is {attempt.phase.name}")


def start(
    client_id: str,
    pin: str,
    salt: bytes,
    client_cert_pem: bytes,
    identity: HostIdentity,
    now: float | None = None,
) -> Transition:
    """Phase 1: create a new attempt and answer with the host certificate."""
    response, shared_key = protocol.get_server_cert(pin, salt, identity.cert_pem)
    attempt = PairingAttempt(
        client_id=client_id,
        shared_key=shared_key,
        client_cert_pem=client_cert_pem,
    )
    if now is not None:
        attempt.created_at = now
    return attempt, response


def receive_client_challenge(
    attempt: PairingAttempt,
    client_challenge: bytes,
    identity: HostIdentity,
    server_secret: bytes | None = None,
    server_challenge: bytes | None = None,
) -> Transition:
    """Phase 2: decrypt the client challenge and issue ours."""
    try:
        _require(attempt, PairingPhase.AWAITING_CLIENT_CHALLENGE)
        response, server_secret, server_challenge = protocol.issue_challenge(
            attempt.shared_key,
            client_challenge,
            identity.cert_signature,
            server_secret=server_secret,
            server_challenge=server_challenge,
        )
    except PairingError as e:
        return reject(attempt, e)

    return (
        attempt.advance(
            PairingPhase.AWAITING_SERVER_RESPONSE,
            server_secret=server_secret,
            server_challenge=server_challenge,
        ),
        response,
    )


def receive_server_challenge_resp(
    attempt: PairingAttempt,
    server_challenge_resp: bytes,
    identity: HostIdentity,
) -> Transition:
    """Phase 3: decrypt the client hash and reveal the signed secret."""
    try:
        _require(attempt, PairingPhase.AWAITING_SERVER_RESPONSE)
        response, client_hash = protocol.commit_secret(
            attempt.shared_key,
            attempt.server_secret,
            server_challenge_resp,
            identity,
        )
    except PairingError as e:
        return reject(attempt, e)

    return (
        attempt.advance(PairingPhase.AWAITING_CLIENT_HASH, client_hash=client_hash),
        response,
    )


def receive_client_pairing_secret(
    attempt: PairingAttempt,
    client_pairing_secret: bytes,
) -> Transition:
    """Phase 4: verify the client and produce the final verdict."""
    try:
        _require(attempt, PairingPhase.AWAITING_CLIENT_HASH)
    except PairingError as e:
        return reject(attempt, e)

    try:
        client_signature = cert_signature(attempt.client_cert_pem)
        client_key = cert_public_key(attempt.client_cert_pem)
    except CryptoError as e:
        logger.warning(f"Unusable client certificate for {attempt.client_id[:8]}...: {e}")
        return replace(attempt, phase=PairingPhase.REJECTED), PairingResponse.unpaired()

    response = protocol.verify_and_pair(
        attempt.server_challenge,
        attempt.client_hash,
        client_pairing_secret,
        client_signature,
        client_key,
    )
    if not response.is_paired:
        logger.warning(f"Pairing verification failed for {attempt.client_id[:8]}...")
        return replace(attempt, phase=PairingPhase.REJECTED), response

    return attempt.advance(PairingPhase.PAIRED), response
