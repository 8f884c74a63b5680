"""
OAuth Authentication Package for Project Pulse.

This package provides the session layer of the dashboard:
- Credential persistence with lazy expiry eviction
- Session state machine around the Google code exchange
- Credentials for the Sheets client of the active session
"""

from .scopes import SCOPES, GMAIL_SEND_SCOPE, SHEETS_READONLY_SCOPE, get_scopes
from .oauth_config import OAuthConfig
from .credential_store import (
    CredentialRecord,
    CredentialStore,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStore,
)
from .session import (
    CodeExchanger,
    GoogleCodeExchanger,
    SessionManager,
    SessionState,
    extract_authorization_code,
)

__all__ = [
    # Scopes
    "SCOPES",
    "GMAIL_SEND_SCOPE",
    "SHEETS_READONLY_SCOPE",
    "get_scopes",
    # Config
    "OAuthConfig",
    # Credential Store
    "CredentialRecord",
    "CredentialStore",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueStore",
    # Session
    "CodeExchanger",
    "GoogleCodeExchanger",
    "SessionManager",
    "SessionState",
    "extract_authorization_code",
]
