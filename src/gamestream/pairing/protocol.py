"""GameStream pairing protocol, host side.

The handshake runs in four phases, one HTTP request each:

1. ``getservercert``: client sends salt and its certificate, host
   answers with its own certificate. Both sides derive the shared AES
   key from the salt and the PIN typed by the user.
2. ``clientchallenge``: host decrypts the client challenge and proves
   knowledge of the key with
   ``SHA256(challenge + host_cert_signature + server_secret)``,
   appending its own challenge.
3. ``serverchallengeresp``: host decrypts the client hash and reveals
   its secret signed with the host private key.
4. ``clientpairingsecret``: host checks the client hash against the
   client secret and verifies the secret's signature.

Byte layouts, field names and the truncated key are fixed by the client
implementation. The functions here are pure: callers keep the returned
state between phases.
"""

import logging

from gamestream.crypto import (
    AES_KEY_LENGTH,
    aes_decrypt,
    aes_encrypt,
    digests_equal,
    random_bytes,
    sha256,
    verify,
)
from gamestream.errors import (
    CryptoError,
    DecryptionFailure,
    HashMismatch,
    PairingError,
    SignatureInvalid,
)
from gamestream.identity import HostIdentity
from gamestream.pairing.response import (
    CHALLENGE_RESPONSE,
    PAIRING_SECRET,
    PLAINCERT,
    PairingResponse,
    to_hex,
)

logger = logging.getLogger(__name__)

__all__ = [
    "SECRET_LENGTH",
    "CHALLENGE_LENGTH",
    "HASH_LENGTH",
    "derive_key",
    "get_server_cert",
    "begin_pairing",
    "issue_challenge",
    "commit_secret",
    "verify_and_pair",
]

SECRET_LENGTH = 16
CHALLENGE_LENGTH = 16
HASH_LENGTH = 32  # SHA-256


def derive_key(pin: str, salt: bytes) -> bytes:
    """Derive the shared AES key from the user PIN and the client salt.

    Must match what Moonlight computes, otherwise the client challenge
    cannot be decrypted.

    Returns:
        ``SHA256(salt + pin)[0:16]``
    """
    return sha256(salt + pin.encode("utf-8"))[:AES_KEY_LENGTH]


def get_server_cert(
    pin: str, salt: bytes, host_cert_pem: bytes
) -> tuple[PairingResponse, bytes]:
    """Phase 1: hand the host certificate to the client.

    Args:
        pin: PIN entered by the user.
        salt: 16-byte salt sent by the client.
        host_cert_pem: Host certificate (PEM).

    Returns:
        The response and the shared key the caller must keep for
        phases 2 and 3.
    """
    shared_key = derive_key(pin, salt)
    response = PairingResponse.paired(**{PLAINCERT: to_hex(host_cert_pem)})
    return response, shared_key


begin_pairing = get_server_cert


def _decrypt(shared_key: bytes, ciphertext: bytes) -> bytes:
    try:
        return aes_decrypt(shared_key, ciphertext)
    except (CryptoError, ValueError) as e:
        raise DecryptionFailure(str(e)) from e


def issue_challenge(
    shared_key: bytes,
    client_challenge: bytes,
    host_cert_signature: bytes,
    server_secret: bytes | None = None,
    server_challenge: bytes | None = None,
) -> tuple[PairingResponse, bytes, bytes]:
    """Phase 2: answer the client challenge and issue the host challenge.

    Args:
        shared_key: Key from phase 1.
        client_challenge: Encrypted client challenge.
        host_cert_signature: Signature bytes of the host certificate.
        server_secret: Override for the random secret (tests only).
        server_challenge: Override for the random challenge (tests only).

    Returns:
        The response, the server secret and the server challenge.

    Raises:
        DecryptionFailure: If the challenge cannot be decrypted.
    """
    decrypted_challenge = _decrypt(shared_key, client_challenge)

    if server_secret is None:
        server_secret = random_bytes(SECRET_LENGTH)
    if server_challenge is None:
        server_challenge = random_bytes(CHALLENGE_LENGTH)

    proof = sha256(decrypted_challenge + host_cert_signature + server_secret)
    challenge_response = aes_encrypt(shared_key, proof + server_challenge)

    response = PairingResponse.paired(
        **{CHALLENGE_RESPONSE: to_hex(challenge_response)}
    )
    return response, server_secret, server_challenge


def commit_secret(
    shared_key: bytes,
    server_secret: bytes,
    server_challenge_resp: bytes,
    host_identity: HostIdentity,
) -> tuple[PairingResponse, bytes]:
    """Phase 3: reveal the signed server secret.

    Args:
        shared_key: Key from phase 1.
        server_secret: Secret generated in phase 2.
        server_challenge_resp: Encrypted client hash.
        host_identity: Host identity that signs the secret.

    Returns:
        The response and the decrypted client hash, which the caller
        must keep for phase 4.

    Raises:
        DecryptionFailure: If the client hash cannot be decrypted.
    """
    plaintext = _decrypt(shared_key, server_challenge_resp)
    if len(plaintext) < HASH_LENGTH:
        raise DecryptionFailure("Client hash too short")
    client_hash = plaintext[:HASH_LENGTH]

    secret_signature = host_identity.sign(server_secret)
    response = PairingResponse.paired(
        **{PAIRING_SECRET: to_hex(server_secret + secret_signature)}
    )
    return response, client_hash


def _check_pairing_secret(
    server_challenge: bytes,
    client_hash: bytes,
    client_pairing_secret: bytes,
    client_cert_signature: bytes,
    client_public_key,
) -> None:
    client_secret = client_pairing_secret[:SECRET_LENGTH]
    client_signature = client_pairing_secret[SECRET_LENGTH:]

    expected = sha256(server_challenge + client_cert_signature + client_secret)
    if not digests_equal(expected, client_hash):
        raise HashMismatch("Client hash mismatch")

    if not client_signature or not verify(
        client_public_key, client_secret, client_signature
    ):
        raise SignatureInvalid("Client secret signature invalid")


def verify_and_pair(
    server_challenge: bytes,
    client_hash: bytes,
    client_pairing_secret: bytes,
    client_cert_signature: bytes,
    client_public_key,
) -> PairingResponse:
    """Phase 4: verify the client and render the pairing verdict.

    ``client_pairing_secret`` is the 16-byte client secret followed by
    its signature. The client hash must equal
    ``SHA256(server_challenge + client_cert_signature + client_secret)``
    and the signature must verify with the client's public key.

    Returns:
        ``paired=1`` if both checks pass, ``paired=0`` otherwise.
    """
    try:
        _check_pairing_secret(
            server_challenge,
            client_hash,
            client_pairing_secret,
            client_cert_signature,
            client_public_key,
        )
    except PairingError as e:
        logger.debug(f"Pairing verification failed: {type(e).__name__}")
        return PairingResponse.unpaired()

    return PairingResponse.paired()
