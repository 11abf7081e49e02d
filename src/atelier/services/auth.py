"""Authentication service for atelier application.

Sign-in is delegated to a Supabase-compatible identity service (GoTrue REST
API). In development, when no identity service is configured, a single local
administrator signs in against ``DEV_USER_EMAIL``/``DEV_USER_PASSWORD`` and
receives a locally signed HS256 token so the deletion endpoint can still
verify bearer credentials.
"""

import time
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
import requests

from ..config import Settings
from ..error_handling import AuthenticationError, NetworkError
from ..logging_config import get_logger, log_error, log_security_event, log_user_action

logger = get_logger(__name__)

SIGNED_IN = "SIGNED_IN"
SIGNED_OUT = "SIGNED_OUT"

DEV_TOKEN_LIFETIME = timedelta(hours=1)

AuthStateCallback = Callable[[str, "Session | None"], None]


@dataclass
class UserInfo:
    """Represents an authenticated administrator."""

    user_id: str
    email: str
    name: str | None = None

    @classmethod
    def from_identity_payload(cls, payload: dict[str, Any]) -> "UserInfo":
        """Build from a GoTrue ``user`` object or token claims."""
        user_id = payload.get("id") or payload.get("sub")
        email = payload.get("email")
        if not user_id or not email:
            raise ValueError("User id and email are required")
        metadata = payload.get("user_metadata") or {}
        return cls(user_id=user_id, email=email, name=metadata.get("name") or payload.get("name"))


@dataclass
class Session:
    """An issued bearer credential together with its user."""

    access_token: str
    user: UserInfo
    expires_at: datetime | None = None
    refresh_token: str | None = None

    @property
    def is_expired(self) -> bool:
        return self.expires_at is not None and datetime.now(UTC) >= self.expires_at


def _token_expiry(token: str) -> datetime | None:
    """Read the ``exp`` claim without verifying the signature."""
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError:
        return None
    exp = claims.get("exp")
    return datetime.fromtimestamp(exp, UTC) if exp else None


class AuthService:
    """Holds the current session and talks to the identity service."""

    DEV_ALGORITHM = "HS256"

    def __init__(self, settings: Settings, session: requests.Session | None = None) -> None:
        """
        Initialize the authentication service.

        Args:
            settings: Application settings
            session: Optional HTTP session (tests pass a mock)
        """
        self.settings = settings
        self.http = session or requests.Session()
        self._session: Session | None = None
        self._listeners: dict[str, AuthStateCallback] = {}
        self._local_mode = settings.is_development and not settings.supabase_url

        if self._local_mode:
            logger.info("development_auth_mode_enabled", dev_user_email=settings.dev_user_email)

    @property
    def local_mode(self) -> bool:
        return self._local_mode

    # Identity service requests

    def _auth_url(self, path: str) -> str:
        return f"{str(self.settings.supabase_url).rstrip('/')}/auth/v1/{path}"

    def _headers(self, access_token: str | None = None) -> dict[str, str]:
        headers = {"apikey": self.settings.supabase_anon_key or "", "Content-Type": "application/json"}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"
        return headers

    # Session lifecycle

    def sign_in(self, email: str, password: str) -> Session:
        """
        Sign in with email and password.

        Returns:
            The new session

        Raises:
            AuthenticationError: If the credentials are rejected
            NetworkError: If the identity service cannot be reached
        """
        email = email.strip()
        if not email or not password:
            raise AuthenticationError(
                "Email and password are required",
                code="credentials_missing",
                user_message="Enter your email and password.",
            )

        session = self._local_sign_in(email, password) if self._local_mode else self._remote_sign_in(email, password)

        self._session = session
        log_user_action(session.user.user_id, "sign_in", email=session.user.email)
        self._notify(SIGNED_IN, session)
        return session

    def _local_sign_in(self, email: str, password: str) -> Session:
        expected_password = self.settings.dev_user_password
        if email.lower() != self.settings.dev_user_email.lower() or (
            expected_password is not None and password != expected_password
        ):
            log_security_event("sign_in_rejected", email=email, mode="development")
            raise AuthenticationError(
                "Invalid development credentials",
                code="invalid_credentials",
                user_message="Invalid email or password.",
            )

        if expected_password is None:
            logger.warning("dev_password_not_set", message="Accepting any password for the development user")

        user = UserInfo(user_id="dev-admin", email=self.settings.dev_user_email, name="Development Admin")
        expires_at = datetime.now(UTC) + DEV_TOKEN_LIFETIME
        token = self.issue_development_token(user, expires_at)
        return Session(access_token=token, user=user, expires_at=expires_at)

    def issue_development_token(self, user: UserInfo, expires_at: datetime) -> str:
        """Sign a short-lived HS256 token for the local administrator."""
        claims = {
            "sub": user.user_id,
            "email": user.email,
            "name": user.name,
            "iat": int(time.time()),
            "exp": int(expires_at.timestamp()),
            "jti": str(uuid.uuid4()),
        }
        return jwt.encode(claims, self.settings.dev_jwt_secret, algorithm=self.DEV_ALGORITHM)

    def _remote_sign_in(self, email: str, password: str) -> Session:
        try:
            response = self.http.post(
                self._auth_url("token"),
                params={"grant_type": "password"},
                json={"email": email, "password": password},
                headers=self._headers(),
                timeout=self.settings.request_timeout,
            )
        except requests.RequestException as e:
            raise NetworkError(
                f"Identity service unreachable: {e}", code="auth_service_unreachable", original_exception=e
            ) from e

        if response.status_code in (400, 401, 422):
            log_security_event("sign_in_rejected", email=email, status_code=response.status_code)
            raise AuthenticationError(
                "Identity service rejected the credentials",
                code="invalid_credentials",
                user_message="Invalid email or password.",
                details={"status_code": response.status_code},
            )
        if not response.ok:
            raise NetworkError(
                f"Identity service error: HTTP {response.status_code}",
                code="auth_service_error",
                details={"status_code": response.status_code},
            )

        payload = response.json()
        access_token = payload["access_token"]
        expires_at = (
            datetime.fromtimestamp(payload["expires_at"], UTC) if payload.get("expires_at") else _token_expiry(access_token)
        )
        return Session(
            access_token=access_token,
            user=UserInfo.from_identity_payload(payload.get("user") or {}),
            expires_at=expires_at,
            refresh_token=payload.get("refresh_token"),
        )

    def sign_out(self) -> None:
        """Sign out locally and, when configured, revoke the session remotely."""
        session = self._session
        if session is None:
            return

        if not self._local_mode:
            try:
                self.http.post(
                    self._auth_url("logout"),
                    headers=self._headers(session.access_token),
                    timeout=self.settings.request_timeout,
                )
            except requests.RequestException as e:
                # Local sign-out still happens
                log_error(e, {"operation": "sign_out"})

        self._session = None
        log_user_action(session.user.user_id, "sign_out")
        self._notify(SIGNED_OUT, None)

    def get_session(self) -> Session | None:
        """Current unexpired session, or None."""
        if self._session is not None and self._session.is_expired:
            logger.info("session_expired", user_id=self._session.user.user_id)
            self._session = None
            self._notify(SIGNED_OUT, None)
        return self._session

    def get_current_user(self) -> UserInfo | None:
        session = self.get_session()
        return session.user if session else None

    def is_authenticated(self) -> bool:
        return self.get_session() is not None

    def ensure_authenticated(self) -> Session:
        """
        Ensure an administrator is signed in.

        Raises:
            AuthenticationError: If there is no current session
        """
        session = self.get_session()
        if session is None:
            raise AuthenticationError(
                "User is not authenticated",
                code="user_not_authenticated",
                user_message="Please sign in first.",
                details={"operation": "ensure_authenticated"},
            )
        return session

    # Bearer verification (used by the deletion endpoint)

    def verify_token(self, token: str) -> UserInfo:
        """
        Verify a bearer credential and return its user.

        Raises:
            AuthenticationError: If the token is invalid, expired or rejected
        """
        if self._local_mode:
            try:
                claims = jwt.decode(token, self.settings.dev_jwt_secret, algorithms=[self.DEV_ALGORITHM])
                return UserInfo.from_identity_payload(claims)
            except (jwt.PyJWTError, ValueError) as e:
                log_security_event("token_rejected", reason=str(e), mode="development")
                raise AuthenticationError("Invalid token", code="invalid_token", original_exception=e) from e

        try:
            response = self.http.get(
                self._auth_url("user"), headers=self._headers(token), timeout=self.settings.request_timeout
            )
        except requests.RequestException as e:
            raise NetworkError(
                f"Identity service unreachable: {e}", code="auth_service_unreachable", original_exception=e
            ) from e

        if not response.ok:
            log_security_event("token_rejected", status_code=response.status_code)
            raise AuthenticationError(
                "Identity service rejected the token",
                code="invalid_token",
                details={"status_code": response.status_code},
            )

        try:
            return UserInfo.from_identity_payload(response.json())
        except ValueError as e:
            raise AuthenticationError("Token has no usable user", code="invalid_token", original_exception=e) from e

    # Observers

    def on_auth_state_change(self, callback: AuthStateCallback) -> Callable[[], None]:
        """
        Subscribe to sign-in and sign-out notifications.

        Args:
            callback: Called with the event name and the new session (None on sign-out)

        Returns:
            A function that removes the subscription
        """
        key = str(uuid.uuid4())
        self._listeners[key] = callback

        def unsubscribe() -> None:
            self._listeners.pop(key, None)

        return unsubscribe

    def _notify(self, event: str, session: Session | None) -> None:
        for callback in list(self._listeners.values()):
            try:
                callback(event, session)
            except Exception as e:
                log_error(e, {"operation": "auth_state_callback", "auth_event": event})
