"""Spreadsheet read access for the project sheet."""
import logging
from abc import ABC, abstractmethod
from typing import Any

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from ..utils.errors import handle_http_error

logger = logging.getLogger(__name__)


class TabularSource(ABC):
    """Remote source of project rows."""

    @abstractmethod
    def read_rows(
        self, credentials: Credentials, spreadsheet_id: str, range_name: str
    ) -> list[list[Any]]:
        """Read a range, header row included. Blocking."""
        pass


class GoogleSheetsSource(TabularSource):
    """Reads project rows through the Sheets v4 API."""

    def read_rows(
        self, credentials: Credentials, spreadsheet_id: str, range_name: str
    ) -> list[list[Any]]:
        """Read values from a specific range in a Google Sheet.

        Args:
            credentials: Credentials of the active session.
            spreadsheet_id: The sheet ID.
            range_name: The A1 notation range, including the tab name.

        Returns:
            List of rows with cell values.

        Raises:
            RemoteFetchFailedError: If the API call fails.
        """
        sheets_service = build('sheets', 'v4', credentials=credentials, cache_discovery=False)
        try:
            result = sheets_service.spreadsheets().values().get(
                spreadsheetId=spreadsheet_id, range=range_name
            ).execute()
        except HttpError as e:
            raise handle_http_error(e) from e
        finally:
            sheets_service.close()

        values = result.get('values', [])
        logger.debug(f"Read {len(values)} rows from {range_name}")
        return values
