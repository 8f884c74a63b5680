"""Unit tests for the Google API adapters, with the libraries patched out."""
from datetime import datetime
from unittest.mock import MagicMock, Mock, patch

import pytest

from project_pulse.auth.session import GoogleCodeExchanger
from project_pulse.client.sheets import GoogleSheetsSource
from project_pulse.utils.errors import RemoteFetchFailedError

from conftest import FakeClock, T0, make_http_error, make_oauth_config


class TestGoogleSheetsSource:
    """Tests for GoogleSheetsSource."""

    def setup_method(self):
        self.credentials = Mock()
        self.source = GoogleSheetsSource()

    def test_read_rows(self):
        with patch("project_pulse.client.sheets.build") as mock_build:
            service = MagicMock()
            mock_build.return_value = service
            request = service.spreadsheets.return_value.values.return_value.get
            request.return_value.execute.return_value = {"values": [["Name"], ["Alpha"]]}

            rows = self.source.read_rows(self.credentials, "sheet-abc", "Sheet1!A1:G100")

            assert rows == [["Name"], ["Alpha"]]
            mock_build.assert_called_once_with(
                "sheets", "v4", credentials=self.credentials, cache_discovery=False
            )
            request.assert_called_once_with(spreadsheetId="sheet-abc", range="Sheet1!A1:G100")
            service.close.assert_called_once()

    def test_missing_values_is_empty(self):
        with patch("project_pulse.client.sheets.build") as mock_build:
            service = mock_build.return_value
            service.spreadsheets.return_value.values.return_value.get.return_value.execute.return_value = {}

            assert self.source.read_rows(self.credentials, "sheet-abc", "Sheet1!A1:G100") == []

    def test_http_error_is_mapped(self):
        with patch("project_pulse.client.sheets.build") as mock_build:
            service = mock_build.return_value
            execute = service.spreadsheets.return_value.values.return_value.get.return_value.execute
            execute.side_effect = make_http_error(404, "Requested entity was not found.")

            with pytest.raises(RemoteFetchFailedError) as exc_info:
                self.source.read_rows(self.credentials, "sheet-abc", "Sheet1!A1:G100")

            assert exc_info.value.status == 404
            service.close.assert_called_once()


class TestGoogleCodeExchanger:
    """Tests for GoogleCodeExchanger."""

    def setup_method(self):
        self.clock = FakeClock()
        self.exchanger = GoogleCodeExchanger(make_oauth_config(), self.clock)

    def test_exchange_builds_record(self):
        with patch("project_pulse.auth.session.Flow") as mock_flow_cls:
            flow = mock_flow_cls.from_client_config.return_value
            flow.credentials.token = "access-9"
            flow.credentials.refresh_token = "refresh-9"
            flow.credentials.expiry = datetime(2024, 1, 1, 12, 0, 0)

            record = self.exchanger.exchange("abc")

            flow.fetch_token.assert_called_once_with(code="abc")
            _, kwargs = mock_flow_cls.from_client_config.call_args
            assert kwargs["redirect_uri"] == "http://localhost:9877/oauth2callback"
            assert kwargs["autogenerate_code_verifier"] is False
            assert record.access_token == "access-9"
            assert record.refresh_token == "refresh-9"
            assert record.expiry_epoch_millis == 1_704_110_400_000

    def test_missing_expiry_assumes_one_hour(self):
        with patch("project_pulse.auth.session.Flow") as mock_flow_cls:
            flow = mock_flow_cls.from_client_config.return_value
            flow.credentials.expiry = None

            record = self.exchanger.exchange("abc")

            assert record.expiry_epoch_millis == T0 + 3_600_000

    def test_rejection_propagates(self):
        with patch("project_pulse.auth.session.Flow") as mock_flow_cls:
            mock_flow_cls.from_client_config.return_value.fetch_token.side_effect = ValueError(
                "invalid_grant"
            )

            with pytest.raises(ValueError):
                self.exchanger.exchange("abc")
