"""Tests for error types."""

import pytest

from pairgate.errors import (
    DataDirLocked,
    PairgateError,
    PairingCodeExpired,
    PairingCodeInvalid,
    PairingError,
    PairingRateLimited,
    SessionError,
    SessionExpired,
    SessionInvalid,
    SessionLimitReached,
    StorageError,
    Unauthorized,
)


class TestErrorCodes:
    """Each error carries a stable machine-readable code."""

    @pytest.mark.parametrize(
        "error_class,code",
        [
            (PairingCodeInvalid, "PAIRING_CODE_INVALID"),
            (PairingCodeExpired, "PAIRING_CODE_EXPIRED"),
            (PairingRateLimited, "PAIRING_RATE_LIMITED"),
            (SessionInvalid, "SESSION_INVALID"),
            (SessionExpired, "SESSION_EXPIRED"),
            (SessionLimitReached, "SESSION_LIMIT_REACHED"),
            (Unauthorized, "UNAUTHORIZED"),
            (StorageError, "STORAGE_ERROR"),
            (DataDirLocked, "DATA_DIR_LOCKED"),
        ],
    )
    def test_code(self, error_class, code):
        assert error_class().code == code

    def test_default_message(self):
        error = PairingCodeInvalid()
        assert error.message == "Invalid pairing code"
        assert str(error) == "Invalid pairing code"

    def test_custom_message(self):
        error = StorageError("disk full")
        assert error.message == "disk full"
        assert str(error) == "disk full"


class TestHierarchy:
    """Tests for the exception hierarchy."""

    def test_pairing_errors(self):
        for cls in (PairingCodeInvalid, PairingCodeExpired, PairingRateLimited):
            assert issubclass(cls, PairingError)
            assert issubclass(cls, PairgateError)

    def test_session_errors(self):
        for cls in (SessionInvalid, SessionLimitReached):
            assert issubclass(cls, SessionError)

    def test_expired_is_invalid(self):
        """Callers catching SessionInvalid also see expiry."""
        with pytest.raises(SessionInvalid):
            raise SessionExpired()


class TestDataDirLocked:
    """Tests for DataDirLocked."""

    def test_names_holder_pid(self):
        error = DataDirLocked(pid=4242)
        assert error.pid == 4242
        assert "4242" in str(error)

    def test_without_pid(self):
        assert str(DataDirLocked()) == DataDirLocked.default_message
