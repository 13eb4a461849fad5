"""Twelve Data listing feed - ETFs per exchange."""

import logging
from typing import Optional

import httpx

from config import settings
from integrations.exceptions import (
    ProviderAPIError,
    ProviderAuthError,
    ProviderConnectionError,
    ProviderDataError,
)
from integrations.feed_protocol import ListingRecord
from models.instrument import NameSource

logger = logging.getLogger(__name__)

PROVIDER_NAME = "TwelveData"


class TwelveDataClient:
    """Primary listing feed backed by the Twelve Data ``/etfs`` endpoint.

    Twelve Data is neither a regulatory registry nor an exchange, so names
    from it carry the ``FALLBACK`` source rank. The free tier masks ISINs
    with a placeholder string; the identity resolver treats those as absent.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 30.0,
    ):
        self._api_key = api_key or settings.TWELVE_DATA_API_KEY
        self._client = httpx.Client(
            base_url=base_url or settings.TWELVE_DATA_BASE_URL,
            timeout=timeout,
        )

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    @property
    def provider_name(self) -> str:
        return PROVIDER_NAME

    @property
    def name_source(self) -> NameSource:
        return NameSource.FALLBACK

    def _get_json(self, path: str, params: dict) -> dict:
        """GET ``path`` and return the decoded body, mapping failures to provider errors."""
        try:
            response = self._client.get(path, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            if status in (401, 403):
                raise ProviderAuthError(
                    f"Twelve Data authentication failed (HTTP {status})",
                    provider_name=PROVIDER_NAME,
                ) from exc
            raise ProviderAPIError(
                f"Twelve Data API error (HTTP {status})",
                provider_name=PROVIDER_NAME,
                http_status=status,
            ) from exc
        except httpx.TransportError as exc:
            raise ProviderConnectionError(
                f"Twelve Data connection failed: {exc}",
                provider_name=PROVIDER_NAME,
            ) from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise ProviderDataError(
                "Twelve Data returned a non-JSON response",
                provider_name=PROVIDER_NAME,
            ) from exc

        if not isinstance(body, dict):
            raise ProviderDataError(
                "Twelve Data returned an unexpected payload",
                provider_name=PROVIDER_NAME,
            )

        # Errors are also reported in-body with HTTP 200
        if body.get("status") == "error":
            code = body.get("code")
            message = body.get("message") or "unknown error"
            if code in (401, 403):
                raise ProviderAuthError(
                    f"Twelve Data authentication failed: {message}",
                    provider_name=PROVIDER_NAME,
                )
            raise ProviderAPIError(
                f"Twelve Data error: {message}",
                provider_name=PROVIDER_NAME,
                http_status=code if isinstance(code, int) else None,
            )
        return body

    def fetch_listings(self, mic: str) -> list[ListingRecord]:
        """Fetch all ETFs listed on the exchange identified by ``mic``."""
        body = self._get_json(
            "/etfs",
            params={"mic_code": mic, "apikey": self._api_key, "format": "JSON"},
        )
        rows = body.get("data") or []
        records = [self._parse_row(row, mic) for row in rows if isinstance(row, dict)]
        logger.info("Twelve Data: %d ETFs for %s", len(records), mic)
        return records

    @staticmethod
    def _parse_row(row: dict, mic: str) -> ListingRecord:
        return ListingRecord(
            ticker=(row.get("symbol") or "").strip(),
            name=(row.get("name") or "").strip(),
            currency=(row.get("currency") or "").strip().upper(),
            isin=row.get("isin") or None,
            mic=row.get("mic_code") or mic,
            country=row.get("country"),
            figi=row.get("figi_code") or None,
            raw_data=row,
        )
