"""
Session management for Project Pulse.

This module owns the OAuth session of the running client: the authorization
URL, the code exchange, the authenticated/unauthenticated state and the
credentials handed to Google API clients.
"""

import asyncio
import enum
import logging
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional
from urllib.parse import parse_qs, urlencode, urlparse

from google.oauth2.credentials import Credentials
from google_auth_oauthlib.flow import Flow

from ..core.clock import Clock, SystemClock
from ..utils.constants import DEFAULT_FETCH_TIMEOUT_SECONDS
from ..utils.errors import (
    AuthExchangeFailedError,
    NotAuthenticatedError,
    SessionFatalError,
    extract_message,
)
from .credential_store import CredentialRecord, CredentialStore
from .oauth_config import OAuthConfig
from .scopes import get_scopes

logger = logging.getLogger(__name__)

# Used when Google omits expires_in from the token response.
DEFAULT_TOKEN_LIFETIME = timedelta(hours=1)


class SessionState(str, enum.Enum):
    """Authentication state of the running client."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATING = "authenticating"
    AUTHENTICATED = "authenticated"


def _datetime_to_millis(value: datetime) -> int:
    # google-auth keeps expiry as naive UTC
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


def _millis_to_naive_utc(millis: int) -> datetime:
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc).replace(tzinfo=None)


def extract_authorization_code(code_or_url: str) -> str:
    """
    Accept either a bare authorization code or the full redirect URL.

    Args:
        code_or_url: The code, or the URL Google redirected the browser to.

    Returns:
        The authorization code.
    """
    value = (code_or_url or "").strip()
    if "://" not in value and "code=" not in value:
        return value
    query = urlparse(value).query if "://" in value else value.lstrip("?")
    codes = parse_qs(query).get("code")
    return codes[0] if codes else ""


class CodeExchanger(ABC):
    """Exchanges a one-time authorization code for a credential record."""

    @abstractmethod
    def exchange(self, code: str) -> CredentialRecord:
        """Blocking exchange call. Raises on upstream rejection."""
        pass


class GoogleCodeExchanger(CodeExchanger):
    """Code exchange through google_auth_oauthlib."""

    def __init__(self, config: OAuthConfig, clock: Optional[Clock] = None) -> None:
        self._config = config
        self._clock = clock or SystemClock()

    def exchange(self, code: str) -> CredentialRecord:
        flow = Flow.from_client_config(
            self._config.client_config(),
            scopes=get_scopes(),
            redirect_uri=self._config.redirect_uri,
            autogenerate_code_verifier=False,
        )
        flow.fetch_token(code=code)
        credentials = flow.credentials

        if credentials.expiry is not None:
            expiry_millis = _datetime_to_millis(credentials.expiry)
        else:
            logger.warning("Token response has no expiry, assuming one hour")
            expiry_millis = self._clock.now_millis() + int(
                DEFAULT_TOKEN_LIFETIME.total_seconds() * 1000
            )

        return CredentialRecord(
            access_token=credentials.token,
            refresh_token=credentials.refresh_token,
            expiry_epoch_millis=expiry_millis,
        )


class SessionManager:
    """
    Owns the single OAuth session of a running client.

    State machine:
        UNAUTHENTICATED -> AUTHENTICATING -> AUTHENTICATED
        AUTHENTICATING -> UNAUTHENTICATED on exchange failure
        AUTHENTICATED -> UNAUTHENTICATED on sign-out or invalidation

    Construct exactly one instance per client and inject it where needed.
    """

    def __init__(
        self,
        config: OAuthConfig,
        credential_store: CredentialStore,
        clock: Optional[Clock] = None,
        exchanger: Optional[CodeExchanger] = None,
        exchange_timeout_seconds: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
    ) -> None:
        self._config = config
        self._store = credential_store
        self._clock = clock or SystemClock()
        self._exchanger = exchanger or GoogleCodeExchanger(config, self._clock)
        self._exchange_timeout_seconds = exchange_timeout_seconds

        self._state = SessionState.UNAUTHENTICATED
        self._record: Optional[CredentialRecord] = None
        self._generation = 0
        self._sign_out_listeners: List[Callable[[], None]] = []

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_authenticated(self) -> bool:
        return self._state == SessionState.AUTHENTICATED

    @property
    def generation(self) -> int:
        """Counter bumped whenever a session starts or ends."""
        return self._generation

    @property
    def credential_record(self) -> Optional[CredentialRecord]:
        return self._record

    def add_sign_out_listener(self, callback: Callable[[], None]) -> None:
        """Register a callback run on every sign-out or invalidation."""
        self._sign_out_listeners.append(callback)

    def get_authorization_url(self) -> str:
        """
        Build the Google authorization URL.

        Returns:
            URL requesting offline access to the dashboard scopes with forced
            consent.

        Raises:
            ConfigurationError: If the client id or redirect URI is empty.
        """
        self._config.validate()
        params = {
            "client_id": self._config.client_id,
            "redirect_uri": self._config.redirect_uri,
            "response_type": "code",
            "scope": " ".join(get_scopes()),
            "access_type": "offline",
            "prompt": "consent",
        }
        logger.info("Generated authentication URL")
        return f"{self._config.auth_uri}?{urlencode(params)}"

    async def authenticate(self, code: str) -> CredentialRecord:
        """
        Exchange an authorization code for credentials.

        Args:
            code: The one-time code, or the full redirect URL carrying it.

        Returns:
            The new CredentialRecord.

        Raises:
            AuthExchangeFailedError: If Google rejects the code or the call
                times out.
        """
        if self._state == SessionState.AUTHENTICATING:
            raise AuthExchangeFailedError("Authentication failed: another sign-in is in progress")

        auth_code = extract_authorization_code(code)
        if not auth_code:
            raise AuthExchangeFailedError("Authentication failed: no authorization code provided")

        previous_state = self._state
        self._state = SessionState.AUTHENTICATING
        generation = self._generation
        logger.info("Attempting to exchange authorization code for tokens")

        try:
            record = await asyncio.wait_for(
                asyncio.to_thread(self._exchanger.exchange, auth_code),
                timeout=self._exchange_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            self._fail_authentication(previous_state)
            raise AuthExchangeFailedError(
                f"Authentication failed: token exchange timed out after "
                f"{self._exchange_timeout_seconds:g}s",
                cause=e,
            ) from e
        except Exception as e:
            self._fail_authentication(previous_state)
            message = extract_message(e)
            logger.error(f"Authentication failed during token exchange: {message}")
            raise AuthExchangeFailedError(f"Authentication failed: {message}", cause=e) from e

        if self._generation != generation or self._state != SessionState.AUTHENTICATING:
            logger.warning("Session ended while the code was being exchanged, discarding tokens")
            raise AuthExchangeFailedError("Authentication failed: signed out during sign-in")

        self._save_record(record)
        self._adopt(record)
        expiry = _millis_to_naive_utc(record.expiry_epoch_millis)
        logger.info(f"Successfully authenticated, token expires {expiry.isoformat()}Z")
        return record

    def restore_session(self) -> bool:
        """
        Adopt stored credentials, if any are still valid.

        Returns:
            True when the session is authenticated afterwards.
        """
        if self._state == SessionState.AUTHENTICATED:
            return True

        record = self._store.load()
        if record is None:
            logger.info("No stored session to restore")
            return False

        self._adopt(record)
        logger.info("Restored session from stored credentials")
        return True

    def sign_out(self) -> None:
        """Clear credentials and end the session. Idempotent."""
        logger.info("Signing out user and clearing tokens")
        self._end_session()

    def invalidate(self, reason: str = "session-fatal failure") -> None:
        """End the session on behalf of an internal failure. Idempotent."""
        if self._state == SessionState.UNAUTHENTICATED and self._record is None:
            logger.debug(f"Session already ended, ignoring invalidation ({reason})")
        else:
            logger.warning(f"Invalidating session: {reason}")
        self._end_session()

    def require_active_client(self) -> Credentials:
        """
        Get credentials usable by Google API clients.

        Returns:
            google.oauth2 Credentials for the current session.

        Raises:
            NotAuthenticatedError: If there is no authenticated session.
            SessionFatalError: If the access token expired and cannot be
                refreshed.
        """
        record = self._record
        if self._state != SessionState.AUTHENTICATED or record is None:
            logger.error("Attempted to get client, but user is not authenticated")
            raise NotAuthenticatedError()

        if record.is_expired(self._clock.now_millis()) and not record.refresh_token:
            self.invalidate("access token expired and no refresh token is available")
            raise SessionFatalError()

        return Credentials(
            token=record.access_token,
            refresh_token=record.refresh_token,
            token_uri=self._config.token_uri,
            client_id=self._config.client_id,
            client_secret=self._config.client_secret,
            scopes=get_scopes(),
            expiry=_millis_to_naive_utc(record.expiry_epoch_millis),
        )

    def persist_refreshed(self, credentials: Credentials) -> bool:
        """
        Store an access token the Google client library refreshed mid-call.

        Returns:
            True if the stored record was replaced.
        """
        record = self._record
        if self._state != SessionState.AUTHENTICATED or record is None:
            return False
        if not credentials.token or credentials.token == record.access_token:
            return False

        if credentials.expiry is not None:
            expiry_millis = _datetime_to_millis(credentials.expiry)
        else:
            expiry_millis = record.expiry_epoch_millis

        refreshed = CredentialRecord(
            access_token=credentials.token,
            refresh_token=credentials.refresh_token or record.refresh_token,
            expiry_epoch_millis=expiry_millis,
        )
        self._record = refreshed
        self._save_record(refreshed)
        logger.info("Adopted refreshed access token")
        return True

    def _save_record(self, record: CredentialRecord) -> None:
        # The in-memory record stays authoritative when the write fails.
        try:
            self._store.save(record)
        except OSError as e:
            logger.error(f"Could not persist credentials: {e}")

    def _adopt(self, record: CredentialRecord) -> None:
        self._record = record
        self._state = SessionState.AUTHENTICATED
        self._generation += 1

    def _fail_authentication(self, previous_state: SessionState) -> None:
        if self._state != SessionState.AUTHENTICATING:
            return
        if previous_state == SessionState.AUTHENTICATED:
            self._end_session()
        else:
            self._state = SessionState.UNAUTHENTICATED

    def _end_session(self) -> None:
        had_session = self._record is not None or self._state != SessionState.UNAUTHENTICATED
        self._store.clear()
        self._record = None
        self._state = SessionState.UNAUTHENTICATED
        if had_session:
            self._generation += 1
        for callback in list(self._sign_out_listeners):
            callback()
