"""
Tests for access key checking and bearer token extraction.
"""

import pytest
from fastapi.security import HTTPAuthorizationCredentials

from src.linkgate.core.auth import Authenticator, session_token
from src.linkgate.core.exceptions import SessionInvalidError


class TestCheckCredential:
    """Test the static allow-list check."""

    def setup_method(self) -> None:
        self.authenticator = Authenticator(["DEMO-GATE-2024", "GUEST-KEY"])

    def test_exact_match(self) -> None:
        assert self.authenticator.check_credential("DEMO-GATE-2024") is True
        assert self.authenticator.check_credential("GUEST-KEY") is True

    def test_surrounding_whitespace_ignored(self) -> None:
        assert self.authenticator.check_credential("  GUEST-KEY\n") is True
        assert self.authenticator.check_credential("\tDEMO-GATE-2024 ") is True

    def test_case_sensitive(self) -> None:
        assert self.authenticator.check_credential("guest-key") is False
        assert self.authenticator.check_credential("Demo-Gate-2024") is False

    def test_inner_whitespace_not_ignored(self) -> None:
        assert self.authenticator.check_credential("GUEST -KEY") is False

    def test_partial_and_unknown_keys(self) -> None:
        assert self.authenticator.check_credential("GUEST") is False
        assert self.authenticator.check_credential("GUEST-KEY-2") is False
        assert self.authenticator.check_credential("WRONG-KEY") is False

    def test_empty_and_missing(self) -> None:
        assert self.authenticator.check_credential("") is False
        assert self.authenticator.check_credential("   ") is False
        assert self.authenticator.check_credential(None) is False

    def test_blank_allow_list_entries_never_match(self) -> None:
        authenticator = Authenticator(["", "   ", "REAL"])
        assert authenticator.check_credential("") is False
        assert authenticator.check_credential("REAL") is True

    def test_empty_allow_list(self) -> None:
        assert Authenticator([]).check_credential("DEMO-GATE-2024") is False


class TestSessionToken:
    """Test bearer token extraction."""

    @pytest.mark.asyncio
    async def test_returns_stripped_token(self) -> None:
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials=" abc-123 ")
        assert await session_token(credentials) == "abc-123"

    @pytest.mark.asyncio
    async def test_missing_credentials(self) -> None:
        with pytest.raises(SessionInvalidError):
            await session_token(None)

    @pytest.mark.asyncio
    async def test_blank_credentials(self) -> None:
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials="  ")
        with pytest.raises(SessionInvalidError):
            await session_token(credentials)
