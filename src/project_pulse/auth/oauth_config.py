"""
OAuth Configuration Management for Project Pulse.

This module centralizes OAuth-related configuration to eliminate hardcoded values.
"""

import os
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from ..utils.constants import GOOGLE_AUTH_URI, GOOGLE_CERTS_URL, GOOGLE_TOKEN_URI
from ..utils.errors import ConfigurationError

load_dotenv()


class OAuthConfig:
    """
    Centralized OAuth configuration management.

    Provides a single source of truth for all OAuth-related configuration values.
    """

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        redirect_uri: Optional[str] = None,
    ) -> None:
        # OAuth client configuration
        self.client_id = client_id if client_id is not None else os.getenv("GOOGLE_OAUTH_CLIENT_ID", "")
        self.client_secret = (
            client_secret
            if client_secret is not None
            else os.getenv("GOOGLE_OAUTH_CLIENT_SECRET", "")
        )

        # Redirect URI configuration
        self.redirect_uri = (
            redirect_uri
            if redirect_uri is not None
            else os.getenv("PROJECT_PULSE_REDIRECT_URI", "http://localhost:9877/oauth2callback")
        )

        self.auth_uri = GOOGLE_AUTH_URI
        self.token_uri = GOOGLE_TOKEN_URI

    def validate(self) -> None:
        """
        Check that the configuration can build an authorization request.

        Raises:
            ConfigurationError: If the client id or redirect URI is empty.
        """
        if not (self.client_id or "").strip():
            raise ConfigurationError("OAuth client id is not configured (GOOGLE_OAUTH_CLIENT_ID)")
        if not (self.redirect_uri or "").strip():
            raise ConfigurationError("OAuth redirect URI is not configured (PROJECT_PULSE_REDIRECT_URI)")

    def configuration_issues(self) -> List[str]:
        """List missing OAuth settings that will stop sign-in from working."""
        issues = []
        if not self.client_id:
            issues.append("GOOGLE_OAUTH_CLIENT_ID is not set")
        if not self.client_secret:
            issues.append("GOOGLE_OAUTH_CLIENT_SECRET is not set")
        if not self.redirect_uri:
            issues.append("PROJECT_PULSE_REDIRECT_URI is not set")
        return issues

    def client_config(self) -> Dict[str, Any]:
        """Client config in the shape google_auth_oauthlib expects."""
        return {
            "web": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": self.auth_uri,
                "token_uri": self.token_uri,
                "auth_provider_x509_cert_url": GOOGLE_CERTS_URL,
                "redirect_uris": [self.redirect_uri],
            }
        }

