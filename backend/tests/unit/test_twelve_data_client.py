"""Unit tests for TwelveDataClient (mocked httpx)."""

from unittest.mock import patch

import httpx
import pytest

from integrations.exceptions import (
    ProviderAPIError,
    ProviderAuthError,
    ProviderConnectionError,
    ProviderDataError,
)
from integrations.twelve_data_client import TwelveDataClient
from models.instrument import NameSource


@pytest.fixture
def client():
    c = TwelveDataClient(api_key="test-key", base_url="https://api.example.test")
    yield c
    c.close()


def _response(status_code: int = 200, **kwargs) -> httpx.Response:
    return httpx.Response(
        status_code,
        request=httpx.Request("GET", "https://api.example.test/etfs"),
        **kwargs,
    )


ETF_PAYLOAD = {
    "data": [
        {
            "symbol": "EUNL",
            "name": "iShares Core MSCI World UCITS ETF",
            "currency": "eur",
            "exchange": "XETR",
            "mic_code": "XETR",
            "country": "Germany",
            "figi_code": "BBG000000001",
            "isin": "IE00B4L5Y983",
        },
        {
            "symbol": "VWCE",
            "name": " Vanguard FTSE All-World ",
            "currency": "EUR",
            "mic_code": "XETR",
            "isin": "request_access_via_add_ons",
        },
        {"symbol": "XDWD", "name": "Xtrackers MSCI World", "currency": "EUR"},
    ],
    "status": "ok",
}


class TestIdentity:
    def test_provider_name(self, client):
        assert client.provider_name == "TwelveData"

    def test_names_are_fallback_rank(self, client):
        assert client.name_source is NameSource.FALLBACK


class TestFetchListings:
    def test_parses_rows(self, client):
        with patch.object(client._client, "get", return_value=_response(json=ETF_PAYLOAD)) as mock_get:
            records = client.fetch_listings("XETR")

        mock_get.assert_called_once_with(
            "/etfs", params={"mic_code": "XETR", "apikey": "test-key", "format": "JSON"}
        )
        assert [r.ticker for r in records] == ["EUNL", "VWCE", "XDWD"]
        eunl = records[0]
        assert eunl.currency == "EUR"
        assert eunl.isin == "IE00B4L5Y983"
        assert eunl.figi == "BBG000000001"
        assert eunl.raw_data["country"] == "Germany"

    def test_placeholder_isin_passed_through(self, client):
        """The free-tier placeholder is left for the identity resolver to reject."""
        with patch.object(client._client, "get", return_value=_response(json=ETF_PAYLOAD)):
            records = client.fetch_listings("XETR")

        assert records[1].isin == "request_access_via_add_ons"
        assert records[1].name == "Vanguard FTSE All-World"

    def test_missing_fields_default(self, client):
        with patch.object(client._client, "get", return_value=_response(json=ETF_PAYLOAD)):
            records = client.fetch_listings("XETR")

        assert records[2].isin is None
        assert records[2].mic == "XETR"

    def test_empty_data(self, client):
        with patch.object(client._client, "get", return_value=_response(json={"data": []})):
            assert client.fetch_listings("XWAR") == []


class TestErrors:
    def test_http_401_is_auth_error(self, client):
        with patch.object(client._client, "get", return_value=_response(401)):
            with pytest.raises(ProviderAuthError):
                client.fetch_listings("XETR")

    def test_http_500_is_retriable_api_error(self, client):
        with patch.object(client._client, "get", return_value=_response(500)):
            with pytest.raises(ProviderAPIError) as exc_info:
                client.fetch_listings("XETR")
        assert exc_info.value.http_status == 500
        assert exc_info.value.retriable is True

    def test_connect_error(self, client):
        with patch.object(client._client, "get", side_effect=httpx.ConnectError("refused")):
            with pytest.raises(ProviderConnectionError):
                client.fetch_listings("XETR")

    def test_timeout(self, client):
        with patch.object(client._client, "get", side_effect=httpx.ReadTimeout("slow")):
            with pytest.raises(ProviderConnectionError):
                client.fetch_listings("XETR")

    def test_dropped_connection(self, client):
        with patch.object(client._client, "get", side_effect=httpx.ReadError("connection reset")):
            with pytest.raises(ProviderConnectionError):
                client.fetch_listings("XETR")

    def test_malformed_http_response(self, client):
        error = httpx.RemoteProtocolError("illegal status line")
        with patch.object(client._client, "get", side_effect=error):
            with pytest.raises(ProviderConnectionError):
                client.fetch_listings("XETR")

    def test_in_body_error(self, client):
        body = {"status": "error", "code": 429, "message": "You have run out of API credits"}
        with patch.object(client._client, "get", return_value=_response(json=body)):
            with pytest.raises(ProviderAPIError) as exc_info:
                client.fetch_listings("XETR")
        assert exc_info.value.http_status == 429
        assert "API credits" in str(exc_info.value)

    def test_in_body_auth_error(self, client):
        body = {"status": "error", "code": 401, "message": "apikey is incorrect"}
        with patch.object(client._client, "get", return_value=_response(json=body)):
            with pytest.raises(ProviderAuthError):
                client.fetch_listings("XETR")

    def test_non_json_body(self, client):
        with patch.object(client._client, "get", return_value=_response(text="<html>")):
            with pytest.raises(ProviderDataError):
                client.fetch_listings("XETR")

    def test_non_object_body(self, client):
        with patch.object(client._client, "get", return_value=_response(json=[1, 2])):
            with pytest.raises(ProviderDataError):
                client.fetch_listings("XETR")
