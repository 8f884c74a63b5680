"""
Google OAuth Scopes for Project Pulse.

The dashboard only reads the project sheet and sends status mail.
"""

from typing import List

# Google Sheets scope
SHEETS_READONLY_SCOPE = "https://www.googleapis.com/auth/spreadsheets.readonly"

# Gmail scope (used by status mail, outside the sync core)
GMAIL_SEND_SCOPE = "https://www.googleapis.com/auth/gmail.send"

SCOPES = [SHEETS_READONLY_SCOPE, GMAIL_SEND_SCOPE]


def get_scopes() -> List[str]:
    """
    Get the list of OAuth scopes required for Project Pulse.

    Returns:
        List of OAuth scopes, in a fixed order.
    """
    return list(SCOPES)
