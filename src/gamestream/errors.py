"""Base exceptions for the GameStream host."""


class GameStreamError(Exception):
    """Base exception for all GameStream errors."""

    pass


class CryptoError(GameStreamError):
    """Cryptographic operation failed."""

    pass


class ConfigError(GameStreamError):
    """Configuration or host identity error."""

    pass


class PairingError(GameStreamError):
    """Pairing handshake failed.

    Every subclass resolves to the same unpaired response, so callers
    must not surface which one occurred.
    """

    pass


class DecryptionFailure(PairingError):
    """Ciphertext could not be decrypted with the shared key."""

    pass


class HashMismatch(PairingError):
    """Client hash does not match the expected value."""

    pass


class SignatureInvalid(PairingError):
    """Client pairing secret signature did not verify."""

    pass


class ProtocolOutOfOrder(PairingError):
    """Phase invoked without the expected prior attempt state."""

    pass


class AttemptExpired(PairingError):
    """Pairing attempt was resumed after its expiry window."""

    pass
