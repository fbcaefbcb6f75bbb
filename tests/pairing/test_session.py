"""Tests for pairing attempt state machine."""

import time

import pytest

from gamestream.pairing.session import PairingAttempt, PairingPhase


def make_attempt(**kwargs) -> PairingAttempt:
    return PairingAttempt(client_id="client-1", shared_key=b"\x01" * 16, **kwargs)


class TestPairingAttemptCreate:
    """Tests for PairingAttempt creation."""

    def test_starts_awaiting_client_challenge(self):
        """New attempt waits for phase 2."""
        attempt = make_attempt()
        assert attempt.phase == PairingPhase.AWAITING_CLIENT_CHALLENGE
        assert attempt.server_secret is None
        assert attempt.server_challenge is None
        assert attempt.client_hash is None

    def test_sets_created_at(self):
        """created_at defaults to now."""
        before = time.time()
        attempt = make_attempt()
        after = time.time()
        assert before <= attempt.created_at <= after


class TestPairingAttemptAdvance:
    """Tests for phase transitions."""

    def test_full_path(self):
        """Phases advance in protocol order."""
        attempt = make_attempt()
        attempt = attempt.advance(
            PairingPhase.AWAITING_SERVER_RESPONSE,
            server_secret=b"\x02" * 16,
            server_challenge=b"\x03" * 16,
        )
        attempt = attempt.advance(PairingPhase.AWAITING_CLIENT_HASH, client_hash=b"\x04" * 32)
        attempt = attempt.advance(PairingPhase.PAIRED)

        assert attempt.phase == PairingPhase.PAIRED
        assert attempt.server_secret == b"\x02" * 16
        assert attempt.client_hash == b"\x04" * 32

    def test_advance_returns_copy(self):
        """Original attempt is left unchanged."""
        attempt = make_attempt()
        advanced = attempt.advance(PairingPhase.AWAITING_SERVER_RESPONSE)
        assert attempt.phase == PairingPhase.AWAITING_CLIENT_CHALLENGE
        assert advanced is not attempt

    @pytest.mark.parametrize(
        "target",
        [PairingPhase.AWAITING_CLIENT_HASH, PairingPhase.PAIRED],
    )
    def test_cannot_skip_phases(self, target):
        """Skipping a phase is invalid."""
        with pytest.raises(ValueError, match="Invalid transition"):
            make_attempt().advance(target)

    def test_any_live_phase_can_reject(self):
        """REJECTED is reachable from every non-terminal phase."""
        attempt = make_attempt()
        assert attempt.advance(PairingPhase.REJECTED).phase == PairingPhase.REJECTED

        attempt = attempt.advance(PairingPhase.AWAITING_SERVER_RESPONSE)
        assert attempt.advance(PairingPhase.REJECTED).phase == PairingPhase.REJECTED

        attempt = attempt.advance(PairingPhase.AWAITING_CLIENT_HASH)
        assert attempt.advance(PairingPhase.REJECTED).phase == PairingPhase.REJECTED

    @pytest.mark.parametrize("terminal", [PairingPhase.PAIRED, PairingPhase.REJECTED])
    def test_terminal_phases(self, terminal):
        """Nothing follows PAIRED or REJECTED."""
        attempt = make_attempt(phase=terminal)
        assert attempt.is_terminal
        with pytest.raises(ValueError):
            attempt.advance(PairingPhase.AWAITING_CLIENT_CHALLENGE)


class TestPairingAttemptExpiry:
    """Tests for expiry."""

    def test_not_expired_within_window(self):
        """Fresh attempt is live."""
        attempt = make_attempt(created_at=1000.0)
        assert not attempt.is_expired(300, now=1299.0)

    def test_expired_after_window(self):
        """Attempt older than the timeout is expired."""
        attempt = make_attempt(created_at=1000.0)
        assert attempt.is_expired(300, now=1301.0)


class TestPairingAttemptWipe:
    """Tests for key material wiping."""

    def test_wipe_zeroes_secrets(self):
        """All secrets become zero bytes of the same length."""
        attempt = make_attempt(
            server_secret=b"\x02" * 16,
            server_challenge=b"\x03" * 16,
            client_hash=b"\x04" * 32,
        )
        attempt.wipe()

        assert attempt.shared_key == b"\x00" * 16
        assert attempt.server_secret == b"\x00" * 16
        assert attempt.server_challenge == b"\x00" * 16
        assert attempt.client_hash == b"\x00" * 32

    def test_wipe_before_phase_two(self):
        """Wiping an attempt without phase 2 state works."""
        attempt = make_attempt()
        attempt.wipe()
        assert attempt.shared_key == b"\x00" * 16
        assert attempt.server_secret is None
