"""Host identity: the long-lived certificate and private key.

The identity is created once (generated on first start or loaded from
disk) and shared read-only by every pairing attempt.
"""

import datetime
import logging
import os
from dataclasses import dataclass
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import NameOID

from gamestream.config import IdentityConfig, get_state_dir
from gamestream.crypto import load_certificate, load_private_key, sign
from gamestream.errors import ConfigError, CryptoError

logger = logging.getLogger(__name__)

CERT_FILENAME = "cert.pem"
KEY_FILENAME = "key.pem"


@dataclass(frozen=True)
class HostIdentity:
    """Host certificate and private key.

    Attributes:
        cert_pem: PEM encoded X.509 certificate sent to clients.
        private_key: RSA key matching the certificate.
    """

    cert_pem: bytes
    private_key: rsa.RSAPrivateKey

    @property
    def certificate(self) -> x509.Certificate:
        return load_certificate(self.cert_pem)

    @property
    def cert_signature(self) -> bytes:
        """Signature bytes of the host certificate, bound into the Phase 2 proof."""
        return self.certificate.signature

    def sign(self, data: bytes) -> bytes:
        """Sign data with the host private key."""
        return sign(self.private_key, data)

    def key_pem(self) -> bytes:
        return self.private_key.private_bytes(
            serialization.Encoding.PEM,
            serialization.PrivateFormat.TraditionalOpenSSL,
            serialization.NoEncryption(),
        )

    @classmethod
    def generate(
        cls,
        common_name: str = "GameStream Host",
        key_size: int = 2048,
        valid_days: int = 7300,
    ) -> "HostIdentity":
        """Generate a self-signed RSA identity.

        Args:
            common_name: Subject and issuer CN.
            key_size: RSA modulus size in bits.
            valid_days: Certificate lifetime.

        Returns:
            New HostIdentity.
        """
        key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)
        subject = issuer = x509.Name(
            [x509.NameAttribute(NameOID.COMMON_NAME, common_name)]
        )
        now = datetime.datetime.now(datetime.timezone.utc)
        cert = (
            x509.CertificateBuilder()
            .subject_name(subject)
            .issuer_name(issuer)
            .public_key(key.public_key())
            .serial_number(x509.random_serial_number())
            .not_valid_before(now)
            .not_valid_after(now + datetime.timedelta(days=valid_days))
            .sign(key, hashes.SHA256())
        )
        return cls(
            cert_pem=cert.public_bytes(serialization.Encoding.PEM),
            private_key=key,
        )

    @classmethod
    def load(cls, cert_path: Path, key_path: Path) -> "HostIdentity":
        """Load an identity from PEM files.

        Raises:
            ConfigError: If either file is missing or invalid.
        """
        try:
            cert_pem = cert_path.read_bytes()
            key = load_private_key(key_path.read_bytes())
            load_certificate(cert_pem)
        except OSError as e:
            raise ConfigError(f"Cannot read host identity: {e}") from e
        except CryptoError as e:
            raise ConfigError(f"Invalid host identity: {e}") from e

        return cls(cert_pem=cert_pem, private_key=key)

    def save(self, cert_path: Path, key_path: Path) -> None:
        """Write certificate and key as PEM, key readable by owner only."""
        cert_path.parent.mkdir(parents=True, exist_ok=True)
        key_path.parent.mkdir(parents=True, exist_ok=True)

        cert_path.write_bytes(self.cert_pem)
        fd = os.open(key_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as f:
            f.write(self.key_pem())


def identity_paths(config: IdentityConfig) -> tuple[Path, Path]:
    """Resolve certificate and key paths from config."""
    state_dir = get_state_dir()
    cert_path = Path(config.cert_file).expanduser() if config.cert_file else state_dir / CERT_FILENAME
    key_path = Path(config.key_file).expanduser() if config.key_file else state_dir / KEY_FILENAME
    return cert_path, key_path


def load_or_generate(config: IdentityConfig) -> HostIdentity:
    """Load the host identity, generating and saving one on first use.

    Args:
        config: Identity configuration.

    Returns:
        The host identity.

    Raises:
        ConfigError: If existing files cannot be loaded.
    """
    cert_path, key_path = identity_paths(config)

    if cert_path.exists() and key_path.exists():
        logger.debug(f"Loading host identity from {cert_path}")
        return HostIdentity.load(cert_path, key_path)

    identity = HostIdentity.generate(
        common_name=config.common_name,
        key_size=config.key_size,
        valid_days=config.valid_days,
    )
    identity.save(cert_path, key_path)
    logger.info(f"Generated new host identity at {cert_path}")
    return identity
