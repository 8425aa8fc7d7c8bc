"""Unit tests for cooperative cancellation (quapp.cancellation)."""

from __future__ import annotations

import signal

import pytest

from quapp.cancellation import CancelToken, SetupCancelled, capture_interrupts


class TestCancelToken:
    @pytest.mark.unit
    def test_starts_active(self):
        token = CancelToken()
        assert token.cancelled is False
        assert token.reason is None
        token.check()

    @pytest.mark.unit
    def test_cancel_then_check_raises(self):
        token = CancelToken()
        token.cancel("Escape")
        assert token.cancelled is True
        with pytest.raises(SetupCancelled) as excinfo:
            token.check()
        assert excinfo.value.reason == "Escape"
        assert str(excinfo.value) == "Setup canceled (Escape)."

    @pytest.mark.unit
    def test_first_reason_wins(self):
        token = CancelToken()
        token.cancel("Escape")
        token.cancel("Ctrl+C")
        assert token.reason == "Escape"


class TestSetupCancelled:
    @pytest.mark.unit
    def test_message_without_reason(self):
        assert str(SetupCancelled()) == "Setup canceled."


class TestCaptureInterrupts:
    @pytest.mark.unit
    def test_sigint_cancels_token(self):
        token = CancelToken()
        with pytest.raises(SetupCancelled):
            with capture_interrupts(token):
                signal.raise_signal(signal.SIGINT)
        assert token.reason == "Ctrl+C"

    @pytest.mark.unit
    def test_previous_handler_restored(self):
        before = signal.getsignal(signal.SIGINT)
        with capture_interrupts(CancelToken()):
            assert signal.getsignal(signal.SIGINT) is not before
        assert signal.getsignal(signal.SIGINT) is before

    @pytest.mark.unit
    def test_handler_restored_after_error(self):
        before = signal.getsignal(signal.SIGINT)
        with pytest.raises(RuntimeError):
            with capture_interrupts(CancelToken()):
                raise RuntimeError("boom")
        assert signal.getsignal(signal.SIGINT) is before
