"""OpenFIGI enrichment feed - maps (ticker, exchange) to FIGI and name."""

import logging
import time as time_module
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional

import httpx

from config import settings
from integrations.exceptions import (
    ProviderAPIError,
    ProviderAuthError,
    ProviderConnectionError,
    ProviderDataError,
    ProviderError,
)
from integrations.feed_protocol import EnrichmentRequest, EnrichmentResult

logger = logging.getLogger(__name__)

PROVIDER_NAME = "OpenFIGI"

# ISO 10383 MIC -> OpenFIGI exchange code. XWAR has no OpenFIGI coverage.
MIC_TO_OPENFIGI: dict[str, str] = {
    "XETR": "GY",
    "XLON": "LN",
    "XAMS": "NA",
    "XPAR": "FP",
    "XMIL": "IM",
    "XSWX": "SW",
    "XNYS": "US",
    "XNAS": "US",
}

# Mapping jobs allowed per request, without / with an API key
_JOBS_PER_REQUEST_ANONYMOUS = 10
_JOBS_PER_REQUEST_WITH_KEY = 100

# Max retries for rate-limited requests
_MAX_RETRIES = 3
_BASE_DELAY_SECONDS = 1.0


def is_mic_supported(mic: str) -> bool:
    """Check if OpenFIGI has an exchange code for ``mic``."""
    return mic in MIC_TO_OPENFIGI


class OpenFIGIClient:
    """Enrichment feed using the OpenFIGI v3 mapping API.

    OpenFIGI mapping results carry a FIGI and a security name but no ISIN,
    so in practice this feed improves names while identifiers stay
    temporary until a registry source supplies the ISIN.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        max_workers: Optional[int] = None,
        sleep: Callable[[float], None] = time_module.sleep,
    ):
        self._api_key = api_key if api_key is not None else settings.OPENFIGI_API_KEY
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["X-OPENFIGI-APIKEY"] = self._api_key
        self._api_url = api_url or settings.OPENFIGI_API_URL
        self._client = httpx.Client(headers=headers, timeout=30.0)
        self._max_workers = max_workers or settings.OPENFIGI_MAX_WORKERS
        self._sleep = sleep

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    @property
    def provider_name(self) -> str:
        return PROVIDER_NAME

    @property
    def jobs_per_request(self) -> int:
        return _JOBS_PER_REQUEST_WITH_KEY if self._api_key else _JOBS_PER_REQUEST_ANONYMOUS

    def _post_with_retry(self, jobs: list[dict]) -> list[dict]:
        """POST one chunk of mapping jobs, retrying on 429."""
        for attempt in range(_MAX_RETRIES):
            try:
                response = self._client.post(self._api_url, json=jobs)
            except httpx.TransportError as exc:
                raise ProviderConnectionError(
                    f"OpenFIGI connection failed: {exc}",
                    provider_name=PROVIDER_NAME,
                ) from exc

            if response.status_code == 429:
                delay = _BASE_DELAY_SECONDS * (2 ** attempt)
                logger.warning(
                    "OpenFIGI: rate limited, retrying in %.1fs (attempt %d/%d)",
                    delay, attempt + 1, _MAX_RETRIES,
                )
                self._sleep(delay)
                continue

            if response.status_code in (401, 403):
                raise ProviderAuthError(
                    f"OpenFIGI authentication failed (HTTP {response.status_code})",
                    provider_name=PROVIDER_NAME,
                )
            if response.status_code >= 400:
                raise ProviderAPIError(
                    f"OpenFIGI API error (HTTP {response.status_code})",
                    provider_name=PROVIDER_NAME,
                    http_status=response.status_code,
                )

            try:
                body = response.json()
            except ValueError as exc:
                raise ProviderDataError(
                    "OpenFIGI returned a non-JSON response",
                    provider_name=PROVIDER_NAME,
                ) from exc
            if not isinstance(body, list) or len(body) != len(jobs):
                raise ProviderDataError(
                    "OpenFIGI response does not match the request batch",
                    provider_name=PROVIDER_NAME,
                )
            return body

        raise ProviderAPIError(
            "OpenFIGI: max retries exceeded",
            provider_name=PROVIDER_NAME,
            http_status=429,
        )

    @staticmethod
    def _build_job(request: EnrichmentRequest) -> dict:
        job = {
            "idType": "TICKER",
            "idValue": request.ticker,
            "exchCode": MIC_TO_OPENFIGI[request.mic],
        }
        if request.currency:
            job["currency"] = request.currency
        return job

    @staticmethod
    def _parse_entry(request: EnrichmentRequest, entry: dict) -> EnrichmentResult:
        if entry.get("error"):
            return EnrichmentResult(
                ticker=request.ticker, mic=request.mic, success=False, error=entry["error"]
            )
        data = entry.get("data") or []
        if not data:
            return EnrichmentResult(
                ticker=request.ticker,
                mic=request.mic,
                success=False,
                error=entry.get("warning") or "No results from OpenFIGI",
            )
        # First result is the most relevant one
        item = data[0]
        return EnrichmentResult(
            ticker=request.ticker,
            mic=request.mic,
            success=True,
            figi=item.get("figi"),
            name=item.get("name"),
        )

    def _lookup_chunk(self, chunk: list[EnrichmentRequest]) -> list[EnrichmentResult]:
        try:
            entries = self._post_with_retry([self._build_job(r) for r in chunk])
        except ProviderError as exc:
            logger.warning("OpenFIGI: chunk of %d lookups failed: %s", len(chunk), exc)
            return [
                EnrichmentResult(ticker=r.ticker, mic=r.mic, success=False, error=str(exc))
                for r in chunk
            ]
        return [self._parse_entry(r, e) for r, e in zip(chunk, entries)]

    def lookup(self, requests: list[EnrichmentRequest]) -> list[EnrichmentResult]:
        """Resolve tickers via OpenFIGI.

        Requests for venues OpenFIGI does not cover fail without a network
        call. Supported requests are split into per-request job chunks that
        run concurrently; a failed chunk fails only its own lookups.

        Returns:
            One EnrichmentResult per request, in request order.
        """
        results: list[Optional[EnrichmentResult]] = [None] * len(requests)
        supported: list[tuple[int, EnrichmentRequest]] = []
        for index, request in enumerate(requests):
            if is_mic_supported(request.mic):
                supported.append((index, request))
            else:
                results[index] = EnrichmentResult(
                    ticker=request.ticker,
                    mic=request.mic,
                    success=False,
                    error=f"MIC {request.mic} not supported by OpenFIGI",
                )

        if supported:
            size = self.jobs_per_request
            chunks = [supported[i:i + size] for i in range(0, len(supported), size)]
            logger.info(
                "OpenFIGI: %d lookups in %d requests", len(supported), len(chunks)
            )
            with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
                # map() yields in submission order, so indices line up
                chunk_results = pool.map(
                    self._lookup_chunk, [[r for _, r in chunk] for chunk in chunks]
                )
                for chunk, chunk_result in zip(chunks, chunk_results):
                    for (index, _), result in zip(chunk, chunk_result):
                        results[index] = result

        return results
