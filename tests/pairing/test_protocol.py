"""Tests for the pairing phase operations."""

import hashlib
import secrets
from unittest.mock import MagicMock

import pytest
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import padding

from gamestream.crypto import aes_decrypt, aes_encrypt
from gamestream.errors import DecryptionFailure
from gamestream.pairing.protocol import (
    begin_pairing,
    commit_secret,
    derive_key,
    get_server_cert,
    issue_challenge,
    verify_and_pair,
)

SALT = bytes(range(16))


class TestDeriveKey:
    """Tests for shared key derivation."""

    def test_fixed_vector(self):
        """Salt 00..0f with PIN 1234 matches the reference key."""
        assert derive_key("1234", SALT) == bytes.fromhex(
            "bad0b4f7cae08eb7c1b5acc763a8ed25"
        )

    def test_matches_truncated_sha256(self):
        """Key is SHA256(salt + pin) truncated to 16 bytes."""
        salt = secrets.token_bytes(16)
        expected = hashlib.sha256(salt + b"9876").digest()[:16]
        assert derive_key("9876", salt) == expected

    def test_deterministic(self):
        """Same inputs give the same key."""
        assert derive_key("5555", SALT) == derive_key("5555", SALT)

    def test_different_pins_different_keys(self):
        """PIN changes the key."""
        assert derive_key("1234", SALT) != derive_key("0000", SALT)

    def test_salt_precedes_pin(self):
        """Salt is hashed before the PIN."""
        pin_first = hashlib.sha256(b"1234" + SALT).digest()[:16]
        assert derive_key("1234", SALT) != pin_first

    def test_empty_pin_is_valid(self):
        """Empty PIN still derives a 16-byte key."""
        assert len(derive_key("", SALT)) == 16


class TestGetServerCert:
    """Tests for phase 1."""

    def test_response_carries_hex_certificate(self, host_identity):
        """plaincert is the hex encoded host PEM."""
        response, _ = get_server_cert("1234", SALT, host_identity.cert_pem)

        assert response.is_paired
        assert bytes.fromhex(response.get("plaincert")) == host_identity.cert_pem

    def test_returns_derived_key(self, host_identity):
        """Shared key is returned to the caller, not sent."""
        response, shared_key = get_server_cert("1234", SALT, host_identity.cert_pem)

        assert shared_key == derive_key("1234", SALT)
        assert shared_key.hex() not in response.to_xml().decode().lower()

    def test_begin_pairing_alias(self):
        """begin_pairing is the phase 1 operation."""
        assert begin_pairing is get_server_cert


class TestIssueChallenge:
    """Tests for phase 2."""

    @pytest.fixture
    def shared_key(self):
        return derive_key("1234", SALT)

    def test_round_trip(self, shared_key, host_identity):
        """challengeresponse decrypts to proof + server challenge."""
        challenge = secrets.token_bytes(16)
        signature = host_identity.cert_signature

        response, server_secret, server_challenge = issue_challenge(
            shared_key, aes_encrypt(shared_key, challenge), signature
        )

        plaintext = aes_decrypt(shared_key, bytes.fromhex(response.get("challengeresponse")))
        proof = hashlib.sha256(challenge + signature + server_secret).digest()
        assert plaintext == proof + server_challenge
        assert len(plaintext) == 48

    def test_generates_fresh_randomness(self, shared_key):
        """Each call draws a new secret and challenge."""
        ciphertext = aes_encrypt(shared_key, b"\x01" * 16)
        _, secret1, challenge1 = issue_challenge(shared_key, ciphertext, b"sig")
        _, secret2, challenge2 = issue_challenge(shared_key, ciphertext, b"sig")

        assert len(secret1) == 16
        assert len(challenge1) == 16
        assert secret1 != secret2
        assert challenge1 != challenge2

    def test_overrides_are_used(self, shared_key):
        """Explicit secret and challenge make the output deterministic."""
        ciphertext = aes_encrypt(shared_key, b"\x01" * 16)
        kwargs = {"server_secret": b"\x02" * 16, "server_challenge": b"\x03" * 16}

        first, secret, challenge = issue_challenge(shared_key, ciphertext, b"sig", **kwargs)
        second, _, _ = issue_challenge(shared_key, ciphertext, b"sig", **kwargs)

        assert secret == b"\x02" * 16
        assert challenge == b"\x03" * 16
        assert first == second

    @pytest.mark.parametrize("length", [0, 15, 17])
    def test_misaligned_ciphertext_fails(self, shared_key, length):
        """Ciphertext that is not whole blocks is a decryption failure."""
        with pytest.raises(DecryptionFailure):
            issue_challenge(shared_key, b"\x00" * length, b"sig")

    def test_hex_is_uppercase(self, shared_key):
        """Hex fields use uppercase digits."""
        response, _, _ = issue_challenge(
            shared_key, aes_encrypt(shared_key, b"\x01" * 16), b"sig"
        )
        value = response.get("challengeresponse")
        assert value == value.upper()


class TestCommitSecret:
    """Tests for phase 3."""

    @pytest.fixture
    def shared_key(self):
        return derive_key("1234", SALT)

    def test_returns_client_hash(self, shared_key, host_identity):
        """Decrypted client hash is returned for phase 4."""
        client_hash = hashlib.sha256(b"client").digest()
        _, decrypted = commit_secret(
            shared_key,
            b"\x04" * 16,
            aes_encrypt(shared_key, client_hash),
            host_identity,
        )
        assert decrypted == client_hash

    def test_pairing_secret_is_signed_secret(self, shared_key, host_identity):
        """pairingsecret is server secret followed by its signature."""
        server_secret = b"\x04" * 16
        response, _ = commit_secret(
            shared_key,
            server_secret,
            aes_encrypt(shared_key, b"\x05" * 32),
            host_identity,
        )

        data = bytes.fromhex(response.get("pairingsecret"))
        assert data[:16] == server_secret
        host_identity.certificate.public_key().verify(
            data[16:], server_secret, padding.PKCS1v15(), hashes.SHA256()
        )

    def test_short_plaintext_fails(self, shared_key, host_identity):
        """A single block cannot hold the 32-byte hash."""
        with pytest.raises(DecryptionFailure):
            commit_secret(
                shared_key,
                b"\x04" * 16,
                aes_encrypt(shared_key, b"\x05" * 16),
                host_identity,
            )

    def test_misaligned_ciphertext_fails(self, shared_key, host_identity):
        """Truncated ciphertext is a decryption failure."""
        with pytest.raises(DecryptionFailure):
            commit_secret(shared_key, b"\x04" * 16, b"\x00" * 31, host_identity)

    def test_secret_is_signed_by_host_identity(self, shared_key):
        """The identity signs the server secret."""
        identity = MagicMock()
        identity.sign.return_value = b"\xee" * 256
        server_secret = b"\x04" * 16

        response, _ = commit_secret(
            shared_key, server_secret, aes_encrypt(shared_key, b"\x05" * 32), identity
        )

        identity.sign.assert_called_once_with(server_secret)
        assert response.get("pairingsecret") == (server_secret + b"\xee" * 256).hex().upper()


class TestVerifyAndPair:
    """Tests for phase 4."""

    @pytest.fixture
    def honest(self, client_credentials):
        """Inputs of an honest client."""
        key, cert = client_credentials
        server_challenge = secrets.token_bytes(16)
        client_secret = secrets.token_bytes(16)
        client_hash = hashlib.sha256(
            server_challenge + cert.signature + client_secret
        ).digest()
        signature = key.sign(client_secret, padding.PKCS1v15(), hashes.SHA256())
        return {
            "server_challenge": server_challenge,
            "client_hash": client_hash,
            "client_pairing_secret": client_secret + signature,
            "client_cert_signature": cert.signature,
            "client_public_key": cert.public_key(),
        }

    def test_honest_client_pairs(self, honest):
        """Correct hash and signature pair the client."""
        response = verify_and_pair(**honest)
        assert response.get("paired") == "1"

    def test_hash_mismatch_unpaired(self, honest):
        """Wrong client hash is rejected."""
        honest["client_hash"] = bytes(32)
        assert verify_and_pair(**honest).get("paired") == "0"

    def test_swapped_hash_inputs_unpaired(self, honest):
        """Swapping server challenge and cert signature changes the hash."""
        honest["server_challenge"], honest["client_cert_signature"] = (
            honest["client_cert_signature"],
            honest["server_challenge"],
        )
        assert verify_and_pair(**honest).get("paired") == "0"

    def test_hash_is_order_sensitive(self):
        """SHA256(a + b + c) differs from SHA256(b + a + c)."""
        a, b, c = b"\x01" * 16, b"\x02" * 256, b"\x03" * 16
        assert hashlib.sha256(a + b + c).digest() != hashlib.sha256(b + a + c).digest()

    def test_signature_by_other_key_unpaired(self, honest, other_client_credentials):
        """Secret signed by a different key is rejected."""
        other_key, _ = other_client_credentials
        secret = honest["client_pairing_secret"][:16]
        forged = other_key.sign(secret, padding.PKCS1v15(), hashes.SHA256())
        honest["client_pairing_secret"] = secret + forged

        assert verify_and_pair(**honest).get("paired") == "0"

    def test_missing_signature_unpaired(self, honest):
        """Secret without signature is rejected."""
        honest["client_pairing_secret"] = honest["client_pairing_secret"][:16]
        assert verify_and_pair(**honest).get("paired") == "0"

    def test_failures_are_indistinguishable(self, honest):
        """Hash and signature failures produce identical responses."""
        bad_hash = dict(honest, client_hash=bytes(32))
        bad_sig = dict(
            honest,
            client_pairing_secret=honest["client_pairing_secret"][:16] + b"\x00" * 256,
        )
        assert verify_and_pair(**bad_hash).to_xml() == verify_and_pair(**bad_sig).to_xml()
