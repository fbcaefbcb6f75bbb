#!/usr/bin/env python3
"""
Compute test vectors for the GameStream pairing handshake.

The vectors pin the byte layouts a Moonlight client depends on, so any
host implementation can be checked against them. Written independently
of the gamestream package.
"""

import hashlib
import json
from pathlib import Path

from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes


def sha256(data: bytes) -> bytes:
    """SHA-256 hash."""
    return hashlib.sha256(data).digest()


def derive_key(salt: bytes, pin: str) -> bytes:
    """SHA256(salt || pin)[0:16]."""
    return sha256(salt + pin.encode("utf-8"))[:16]


def aes_ecb_encrypt(key: bytes, data: bytes) -> bytes:
    """AES-128-ECB, no padding."""
    encryptor = Cipher(algorithms.AES(key), modes.ECB()).encryptor()
    return encryptor.update(data) + encryptor.finalize()


def compute_key_derivation_vectors() -> list:
    """Compute key derivation test vectors."""
    cases = [
        ("derive_key_pin_1234", bytes(range(16)), "1234"),
        ("derive_key_pin_0000", bytes(range(16)), "0000"),
        ("derive_key_ascii_salt", b"salt-abc", "4321"),
    ]
    return [
        {
            "id": case_id,
            "salt_hex": salt.hex(),
            "pin": pin,
            "expected_key_hex": derive_key(salt, pin).hex(),
        }
        for case_id, salt, pin in cases
    ]


def compute_challenge_vector(key: bytes) -> dict:
    """Phase 2: proof = SHA256(challenge || host_cert_signature || server_secret)."""
    client_challenge = bytes(range(0x10, 0x20))
    host_cert_signature = b"\xaa" * 256
    server_secret = bytes(range(0x20, 0x30))
    server_challenge = bytes(range(0x30, 0x40))

    proof = sha256(client_challenge + host_cert_signature + server_secret)

    return {
        "id": "phase2_fixed",
        "key_hex": key.hex(),
        "client_challenge_hex": client_challenge.hex(),
        "client_challenge_ciphertext_hex": aes_ecb_encrypt(key, client_challenge).hex(),
        "host_cert_signature_hex": host_cert_signature.hex(),
        "server_secret_hex": server_secret.hex(),
        "server_challenge_hex": server_challenge.hex(),
        "expected_proof_hex": proof.hex(),
        "expected_challengeresponse_hex": aes_ecb_encrypt(key, proof + server_challenge).hex(),
    }


def compute_client_hash_vector(key: bytes) -> dict:
    """Phase 3/4: client_hash = SHA256(server_challenge || client_cert_signature || client_secret)."""
    server_challenge = bytes(range(0x30, 0x40))
    client_cert_signature = b"\xbb" * 256
    client_secret = bytes(range(0x40, 0x50))

    client_hash = sha256(server_challenge + client_cert_signature + client_secret)

    return {
        "id": "phase3_fixed",
        "key_hex": key.hex(),
        "server_challenge_hex": server_challenge.hex(),
        "client_cert_signature_hex": client_cert_signature.hex(),
        "client_secret_hex": client_secret.hex(),
        "expected_client_hash_hex": client_hash.hex(),
        "expected_serverchallengeresp_hex": aes_ecb_encrypt(key, client_hash).hex(),
    }


def main():
    """Generate the pairing vectors file."""
    output_dir = Path(__file__).parent.parent / "test-vectors"
    output_dir.mkdir(exist_ok=True)

    key = derive_key(bytes(range(16)), "1234")
    data = {
        "description": (
            "GameStream pairing vectors: key derivation, phase 2, phase 3/4 hashes. "
            "AES-128-ECB without padding."
        ),
        "key_derivation": compute_key_derivation_vectors(),
        "challenge": compute_challenge_vector(key),
        "client_hash": compute_client_hash_vector(key),
    }

    filepath = output_dir / "pairing.json"
    with open(filepath, "w") as f:
        json.dump(data, f, indent=2)
    print(f"Generated: {filepath}")


if __name__ == "__main__":
    main()
