"""
Nyx Error Tests
"""

from nyx.errors import (
    ComplianceError,
    ErrorKind,
    PrivacyError,
    ScannerError,
    TransientLedgerError,
    ViewingKeyError,
)


class TestPrivacyError:
    """Tests for error kinds and payloads."""

    def test_default_kind(self):
        """Test subclasses carry their default kind."""
        assert ViewingKeyError("x").kind == ErrorKind.MALFORMED_VIEWING_KEY
        assert ComplianceError("x").kind == ErrorKind.PERMISSION_DENIED
        assert TransientLedgerError("x").kind == ErrorKind.LEDGER_UNAVAILABLE

    def test_explicit_kind(self):
        """Test an explicit kind overrides the default."""
        err = ComplianceError("expired", ErrorKind.VIEWING_KEY_EXPIRED)
        assert err.kind == ErrorKind.VIEWING_KEY_EXPIRED
        assert str(err) == "[6001] expired"

    def test_to_dict(self):
        """Test JSON form with and without context."""
        assert PrivacyError("boom").to_dict() == {
            "code": 1000,
            "kind": "UNKNOWN_ERROR",
            "message": "boom",
        }
        err = ScannerError("gave up", context={"attempts": 3})
        assert err.to_dict()["context"] == {"attempts": 3}

    def test_hierarchy(self):
        """Test transient ledger errors are scanner errors."""
        assert issubclass(TransientLedgerError, ScannerError)
        assert issubclass(ScannerError, PrivacyError)
