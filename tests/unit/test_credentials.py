"""Unit tests for the credential store.

Covers password hashing, login (case-insensitive names, guest access,
token rotation), logout, account creation and password changes.
"""

import pytest

from mapping_portal.exceptions import InvalidCredentialsError, NotFoundError, ValidationError
from mapping_portal.services import GUEST_ID, CredentialStore, SessionAuthenticator
from mapping_portal.services.credentials import (
    GUEST_UI,
    MAX_PASSWORD_BYTES,
    hash_password,
    verify_password,
)
from mapping_portal.storage import Database
from mapping_portal.storage.entities import User
from tests.helpers.auth import TEST_PASSWORD


class TestPasswordHashing:
    def test_hash_verifies(self):
        hashed = hash_password("s3cret")
        assert hashed != "s3cret"
        assert verify_password("s3cret", hashed)
        assert not verify_password("wrong", hashed)

    def test_hash_is_salted(self):
        assert hash_password("same") != hash_password("same")

    def test_empty_password_rejected(self):
        with pytest.raises(ValidationError):
            hash_password("")

    def test_overlong_password_rejected(self):
        with pytest.raises(ValidationError):
            hash_password("x" * (MAX_PASSWORD_BYTES + 1))

    def test_malformed_hash_does_not_verify(self):
        assert not verify_password("anything", "not-a-bcrypt-hash")


class TestLogin:
    async def test_login_issues_token(self, credentials: CredentialStore, alice: User):
        result = await credentials.login("Alice", TEST_PASSWORD)

        assert result.user_id == alice.id
        assert result.token
        assert result.ui == "default"

    async def test_login_name_is_case_insensitive_and_trimmed(
        self, credentials: CredentialStore, alice: User
    ):
        result = await credentials.login("  aLiCe ", TEST_PASSWORD)
        assert result.user_id == alice.id

    async def test_password_is_not_trimmed(self, credentials: CredentialStore, alice: User):
        with pytest.raises(InvalidCredentialsError):
            await credentials.login("alice", f" {TEST_PASSWORD} ")

    async def test_wrong_password_rejected(self, credentials: CredentialStore, alice: User):
        with pytest.raises(InvalidCredentialsError):
            await credentials.login("alice", "not the password")

    async def test_unknown_user_rejected(self, credentials: CredentialStore):
        with pytest.raises(InvalidCredentialsError):
            await credentials.login("nobody", TEST_PASSWORD)

    async def test_empty_name_rejected(self, credentials: CredentialStore):
        with pytest.raises(InvalidCredentialsError):
            await credentials.login("   ", TEST_PASSWORD)

    async def test_new_login_invalidates_previous_token(
        self,
        credentials: CredentialStore,
        authenticator: SessionAuthenticator,
        alice: User,
    ):
        first = await credentials.login("alice", TEST_PASSWORD)
        second = await credentials.login("alice", TEST_PASSWORD)

        assert first.token != second.token
        assert not await authenticator.authenticate(alice.id, first.token)
        assert await authenticator.authenticate(alice.id, second.token)

    async def test_guest_login(self, credentials: CredentialStore):
        result = await credentials.login("guest", "guest")

        assert result.user_id == GUEST_ID
        assert result.ui == GUEST_UI
        assert result.token

    async def test_guest_login_with_wrong_password_rejected(self, credentials: CredentialStore):
        with pytest.raises(InvalidCredentialsError):
            await credentials.login("guest", "letmein")

    async def test_guest_login_disabled(self, database: Database):
        store = CredentialStore(database, guest_enabled=False)
        with pytest.raises(InvalidCredentialsError):
            await store.login("guest", "guest")


class TestLogout:
    async def test_logout_ends_session(
        self,
        credentials: CredentialStore,
        authenticator: SessionAuthenticator,
        alice: User,
    ):
        result = await credentials.login("alice", TEST_PASSWORD)
        await credentials.logout(alice.id)

        assert not await authenticator.authenticate(alice.id, result.token)

    async def test_guest_logout_is_noop(self, credentials: CredentialStore):
        await credentials.logout(GUEST_ID)


class TestAccounts:
    async def test_create_user(self, credentials: CredentialStore):
        user = await credentials.create_user("carol", "pw-carol", ui="gfbio")

        assert user.id is not None
        assert user.display_name == "carol"
        assert user.ui == "gfbio"
        assert user.session_token is None

    async def test_duplicate_name_rejected_ignoring_case(
        self, credentials: CredentialStore, alice: User
    ):
        with pytest.raises(ValidationError, match="already exists"):
            await credentials.create_user("ALICE", "other")

    async def test_reserved_guest_name_rejected(self, credentials: CredentialStore):
        with pytest.raises(ValidationError, match="reserved"):
            await credentials.create_user("Guest", "pw")

    async def test_blank_name_rejected(self, credentials: CredentialStore):
        with pytest.raises(ValidationError):
            await credentials.create_user("  ", "pw")

    async def test_set_password_ends_session(
        self,
        credentials: CredentialStore,
        authenticator: SessionAuthenticator,
        alice: User,
    ):
        session = await credentials.login("alice", TEST_PASSWORD)
        await credentials.set_password("alice", "a new password")

        assert not await authenticator.authenticate(alice.id, session.token)
        with pytest.raises(InvalidCredentialsError):
            await credentials.login("alice", TEST_PASSWORD)
        assert (await credentials.login("alice", "a new password")).user_id == alice.id

    async def test_set_password_unknown_user(self, credentials: CredentialStore):
        with pytest.raises(NotFoundError):
            await credentials.set_password("nobody", "pw")
