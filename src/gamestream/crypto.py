"""Cryptographic operations for the GameStream host.

This module provides:
- Secure random generation
- AES-128-ECB block encryption (no padding) used by the pairing phases
- SHA-256 hashing
- RSA PKCS#1 v1.5 signing and signature verification
- X.509 certificate helpers

Security notes:
- Uses `cryptography` library for every primitive
- The pairing key is 16 bytes, a truncated SHA-256 digest; Moonlight
  clients derive it the same way, so it must not be changed
- Constant-time comparison for hash verification
"""

import hashlib
import hmac
import secrets

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from gamestream.errors import CryptoError

__all__ = [
    "CryptoError",
    "AES_KEY_LENGTH",
    "BLOCK_SIZE",
    "random_bytes",
    "random_pin",
    "sha256",
    "digests_equal",
    "aes_encrypt",
    "aes_decrypt",
    "sign",
    "verify",
    "load_certificate",
    "cert_signature",
    "cert_public_key",
    "load_private_key",
]

# Constants
AES_KEY_LENGTH = 16  # AES-128
BLOCK_SIZE = 16


def random_bytes(length: int = 16) -> bytes:
    """Generate cryptographically secure random bytes.

    Args:
        length: Number of bytes.

    Returns:
        Random bytes from the platform's secure source.
    """
    return secrets.token_bytes(length)


def random_pin(length: int = 4) -> str:
    """Generate a numeric PIN for the user to type on the client."""
    return "".join(str(secrets.randbelow(10)) for _ in range(length))


def sha256(data: bytes) -> bytes:
    """SHA-256 digest."""
    return hashlib.sha256(data).digest()


def digests_equal(a: bytes, b: bytes) -> bool:
    """Compare two digests in constant time."""
    return hmac.compare_digest(a, b)


def _ecb(key: bytes) -> Cipher:
    if len(key) != AES_KEY_LENGTH:
        raise ValueError(f"Key must be {AES_KEY_LENGTH} bytes")
    return Cipher(algorithms.AES(key), modes.ECB())


def aes_encrypt(key: bytes, plaintext: bytes) -> bytes:
    """Encrypt whole blocks with AES-128-ECB, no padding.

    Args:
        key: 16-byte key.
        plaintext: Data whose length is a multiple of 16.

    Returns:
        Ciphertext of the same length.

    Raises:
        ValueError: If key is not 16 bytes.
        CryptoError: If plaintext is not block aligned.
    """
    if len(plaintext) == 0 or len(plaintext) % BLOCK_SIZE:
        raise CryptoError(f"Plaintext must be a multiple of {BLOCK_SIZE} bytes")

    encryptor = _ecb(key).encryptor()
    return encryptor.update(plaintext) + encryptor.finalize()


def aes_decrypt(key: bytes, ciphertext: bytes) -> bytes:
    """Decrypt whole blocks with AES-128-ECB, no padding.

    Args:
        key: 16-byte key.
        ciphertext: Data whose length is a multiple of 16.

    Returns:
        Decrypted plaintext.

    Raises:
        ValueError: If key is not 16 bytes.
        CryptoError: If ciphertext is empty or not block aligned.
    """
    if len(ciphertext) == 0 or len(ciphertext) % BLOCK_SIZE:
        raise CryptoError(f"Ciphertext must be a multiple of {BLOCK_SIZE} bytes")

    decryptor = _ecb(key).decryptor()
    return decryptor.update(ciphertext) + decryptor.finalize()


def sign(private_key: rsa.RSAPrivateKey, data: bytes) -> bytes:
    """Sign data with RSA PKCS#1 v1.5 over SHA-256."""
    return private_key.sign(data, padding.PKCS1v15(), hashes.SHA256())


def verify(public_key, data: bytes, signature: bytes) -> bool:
    """Verify a SHA-256 signature.

    RSA keys use PKCS#1 v1.5, EC keys use ECDSA. Any other key type
    never verifies.

    Args:
        public_key: Signer's public key.
        data: Signed data.
        signature: Signature bytes.

    Returns:
        True if the signature is valid, False otherwise.
    """
    try:
        if isinstance(public_key, rsa.RSAPublicKey):
            public_key.verify(signature, data, padding.PKCS1v15(), hashes.SHA256())
        elif isinstance(public_key, ec.EllipticCurvePublicKey):
            public_key.verify(signature, data, ec.ECDSA(hashes.SHA256()))
        else:
            return False
    except (InvalidSignature, ValueError):
        return False
    return True


def load_certificate(cert_pem: bytes) -> x509.Certificate:
    """Parse a PEM certificate.

    Raises:
        CryptoError: If the data is not a PEM certificate.
    """
    try:
        return x509.load_pem_x509_certificate(cert_pem)
    except ValueError as e:
        raise CryptoError(f"Invalid certificate: {e}") from e


def cert_signature(cert_pem: bytes) -> bytes:
    """Return the signature bytes of a PEM certificate."""
    return load_certificate(cert_pem).signature


def cert_public_key(cert_pem: bytes):
    """Return the public key of a PEM certificate."""
    return load_certificate(cert_pem).public_key()


def load_private_key(key_pem: bytes) -> rsa.RSAPrivateKey:
    """Load an unencrypted RSA private key from PEM.

    Raises:
        CryptoError: If the key cannot be parsed or is not RSA.
    """
    try:
        key = serialization.load_pem_private_key(key_pem, password=None)
    except (ValueError, TypeError) as e:
        raise CryptoError(f"Invalid private key: {e}") from e

    if not isinstance(key, rsa.RSAPrivateKey):
        raise CryptoError("Host private key must be RSA")
    return key
