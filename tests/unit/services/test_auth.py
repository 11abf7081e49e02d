"""
Unit tests for authentication service.
"""

from dataclasses import replace
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import jwt
import pytest
import requests

from atelier.error_handling import AuthenticationError, NetworkError
from atelier.services.auth import SIGNED_IN, SIGNED_OUT, AuthService, Session, UserInfo


class TestUserInfo:
    """Test cases for UserInfo."""

    def test_from_identity_user_object(self):
        user = UserInfo.from_identity_payload(
            {"id": "user-1", "email": "owner@example.com", "user_metadata": {"name": "Owner"}}
        )

        assert user == UserInfo(user_id="user-1", email="owner@example.com", name="Owner")

    def test_from_token_claims(self):
        user = UserInfo.from_identity_payload({"sub": "user-2", "email": "a@example.com"})

        assert user.user_id == "user-2"
        assert user.name is None

    def test_missing_fields(self):
        with pytest.raises(ValueError):
            UserInfo.from_identity_payload({"email": "a@example.com"})


class TestSession:
    """Test cases for Session expiry."""

    def test_not_expired(self):
        session = Session("token", UserInfo("u", "e@example.com"), expires_at=datetime.now(UTC) + timedelta(minutes=5))

        assert session.is_expired is False

    def test_expired(self):
        session = Session("token", UserInfo("u", "e@example.com"), expires_at=datetime.now(UTC) - timedelta(seconds=1))

        assert session.is_expired is True

    def test_without_expiry(self):
        assert Session("token", UserInfo("u", "e@example.com")).is_expired is False


class TestAuthServiceLocalMode:
    """Test cases for development sign-in."""

    def setup_method(self):
        self.http = MagicMock()

    def test_local_mode_enabled_without_identity_service(self, settings):
        assert AuthService(settings, session=self.http).local_mode is True

    def test_sign_in_success(self, settings):
        service = AuthService(settings, session=self.http)

        session = service.sign_in("Admin@Example.com ", "correct-horse")

        assert service.is_authenticated() is True
        assert service.get_current_user() == session.user
        assert session.user.email == "admin@example.com"
        self.http.post.assert_not_called()

    def test_sign_in_wrong_password(self, settings):
        service = AuthService(settings, session=self.http)

        with pytest.raises(AuthenticationError) as exc_info:
            service.sign_in("admin@example.com", "wrong")

        assert exc_info.value.code == "invalid_credentials"
        assert service.is_authenticated() is False

    def test_sign_in_wrong_email(self, settings):
        service = AuthService(settings, session=self.http)

        with pytest.raises(AuthenticationError):
            service.sign_in("someone@example.com", "correct-horse")

    def test_sign_in_missing_credentials(self, settings):
        service = AuthService(settings, session=self.http)

        with pytest.raises(AuthenticationError) as exc_info:
            service.sign_in("  ", "")

        assert exc_info.value.code == "credentials_missing"

    def test_any_password_accepted_without_configured_password(self, settings):
        service = AuthService(replace(settings, dev_user_password=None), session=self.http)

        assert service.sign_in("admin@example.com", "anything").user.user_id == "dev-admin"

    def test_issued_token_is_verifiable(self, settings):
        """Test that the development token round-trips through verify_token."""
        service = AuthService(settings, session=self.http)
        session = service.sign_in("admin@example.com", "correct-horse")

        user = service.verify_token(session.access_token)

        assert user.user_id == "dev-admin"
        assert user.email == "admin@example.com"
        claims = jwt.decode(session.access_token, "test-secret", algorithms=["HS256"])
        assert claims["exp"] > claims["iat"]

    def test_verify_token_wrong_secret(self, settings):
        service = AuthService(settings, session=self.http)
        forged = jwt.encode({"sub": "x", "email": "x@example.com"}, "other-secret", algorithm="HS256")

        with pytest.raises(AuthenticationError) as exc_info:
            service.verify_token(forged)

        assert exc_info.value.code == "invalid_token"

    def test_verify_token_expired(self, settings):
        service = AuthService(settings, session=self.http)
        user = UserInfo("dev-admin", "admin@example.com")
        token = service.issue_development_token(user, datetime.now(UTC) - timedelta(minutes=1))

        with pytest.raises(AuthenticationError):
            service.verify_token(token)

    def test_sign_out(self, settings):
        service = AuthService(settings, session=self.http)
        service.sign_in("admin@example.com", "correct-horse")

        service.sign_out()

        assert service.is_authenticated() is False
        assert service.get_current_user() is None
        self.http.post.assert_not_called()

    def test_sign_out_without_session_is_noop(self, settings):
        service = AuthService(settings, session=self.http)
        listener = MagicMock()
        service.on_auth_state_change(listener)

        service.sign_out()

        listener.assert_not_called()

    def test_ensure_authenticated(self, settings):
        service = AuthService(settings, session=self.http)

        with pytest.raises(AuthenticationError) as exc_info:
            service.ensure_authenticated()
        assert exc_info.value.code == "user_not_authenticated"

        session = service.sign_in("admin@example.com", "correct-horse")
        assert service.ensure_authenticated() is session

    def test_expired_session_is_cleared(self, settings):
        """Test that an expired session is dropped and observers hear about it."""
        service = AuthService(settings, session=self.http)
        service.sign_in("admin@example.com", "correct-horse")
        listener = MagicMock()
        service.on_auth_state_change(listener)

        service._session.expires_at = datetime.now(UTC) - timedelta(seconds=1)

        assert service.get_session() is None
        listener.assert_called_once_with(SIGNED_OUT, None)


class TestAuthStateObservers:
    """Test cases for sign-in/sign-out notifications."""

    def setup_method(self):
        self.http = MagicMock()

    def test_events_are_delivered(self, settings):
        service = AuthService(settings, session=self.http)
        events = []
        service.on_auth_state_change(lambda event, session: events.append((event, session)))

        session = service.sign_in("admin@example.com", "correct-horse")
        service.sign_out()

        assert events == [(SIGNED_IN, session), (SIGNED_OUT, None)]

    def test_unsubscribe(self, settings):
        service = AuthService(settings, session=self.http)
        listener = MagicMock()
        unsubscribe = service.on_auth_state_change(listener)

        unsubscribe()
        service.sign_in("admin@example.com", "correct-horse")

        listener.assert_not_called()

    def test_failing_callback_does_not_break_sign_in(self, settings):
        service = AuthService(settings, session=self.http)
        service.on_auth_state_change(MagicMock(side_effect=RuntimeError("listener bug")))
        other = MagicMock()
        service.on_auth_state_change(other)

        service.sign_in("admin@example.com", "correct-horse")

        assert service.is_authenticated() is True
        other.assert_called_once()


class TestAuthServiceRemoteMode:
    """Test cases for the identity service integration."""

    def setup_method(self):
        self.http = MagicMock()

    @pytest.fixture
    def remote_settings(self, settings):
        return replace(settings, supabase_url="https://id.example.test/", supabase_anon_key="anon-key")

    def make_response(self, status_code=200, payload=None):
        response = MagicMock()
        response.status_code = status_code
        response.ok = 200 <= status_code < 300
        response.json.return_value = payload or {}
        return response

    def test_sign_in_success(self, remote_settings):
        expires_at = int((datetime.now(UTC) + timedelta(hours=1)).timestamp())
        self.http.post.return_value = self.make_response(
            payload={
                "access_token": "remote-token",
                "refresh_token": "refresh",
                "expires_at": expires_at,
                "user": {"id": "user-9", "email": "owner@example.com"},
            }
        )
        service = AuthService(remote_settings, session=self.http)

        session = service.sign_in("owner@example.com", "pw")

        assert service.local_mode is False
        assert session.access_token == "remote-token"
        assert session.user.user_id == "user-9"
        assert session.refresh_token == "refresh"
        args, kwargs = self.http.post.call_args
        assert args[0] == "https://id.example.test/auth/v1/token"
        assert kwargs["params"] == {"grant_type": "password"}
        assert kwargs["headers"]["apikey"] == "anon-key"

    def test_sign_in_rejected(self, remote_settings):
        self.http.post.return_value = self.make_response(400, {"error": "invalid_grant"})
        service = AuthService(remote_settings, session=self.http)

        with pytest.raises(AuthenticationError) as exc_info:
            service.sign_in("owner@example.com", "bad")

        assert exc_info.value.code == "invalid_credentials"

    def test_sign_in_service_error(self, remote_settings):
        self.http.post.return_value = self.make_response(503)
        service = AuthService(remote_settings, session=self.http)

        with pytest.raises(NetworkError):
            service.sign_in("owner@example.com", "pw")

    def test_sign_in_unreachable(self, remote_settings):
        self.http.post.side_effect = requests.ConnectionError("down")
        service = AuthService(remote_settings, session=self.http)

        with pytest.raises(NetworkError):
            service.sign_in("owner@example.com", "pw")

    def test_sign_out_survives_logout_failure(self, remote_settings):
        self.http.post.side_effect = [
            self.make_response(payload={"access_token": "t", "user": {"id": "u", "email": "o@example.com"}}),
            requests.ConnectionError("down"),
        ]
        service = AuthService(remote_settings, session=self.http)
        service.sign_in("o@example.com", "pw")

        service.sign_out()

        assert service.is_authenticated() is False

    def test_verify_token_remote(self, remote_settings):
        self.http.get.return_value = self.make_response(payload={"id": "user-9", "email": "owner@example.com"})
        service = AuthService(remote_settings, session=self.http)

        user = service.verify_token("remote-token")

        assert user.user_id == "user-9"
        _, kwargs = self.http.get.call_args
        assert kwargs["headers"]["Authorization"] == "Bearer remote-token"

    def test_verify_token_remote_rejected(self, remote_settings):
        self.http.get.return_value = self.make_response(401)
        service = AuthService(remote_settings, session=self.http)

        with pytest.raises(AuthenticationError):
            service.verify_token("stale")
