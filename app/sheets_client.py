"""
Google Sheets client for the bar and drink source of record.
Reads raw cell values over the Sheets v4 REST API.
"""
import logging
from typing import Optional, List, Dict, Any
from urllib.parse import quote

import requests
from dotenv import load_dotenv
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
)

from app.cache import UpstreamFetchFailure
from config.settings import Settings, settings as default_settings

load_dotenv()

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("sheets_client")

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class TransientSheetsError(Exception):
    """A failure worth retrying (timeouts, connection drops, 429/5xx)."""


class SheetRangeNotFound(UpstreamFetchFailure):
    """HTTP 400 for a range, e.g. a tab that does not exist in the spreadsheet."""


class SheetsClient:
    """
    Thin wrapper over ``GET /spreadsheets/{id}/values/{range}``.

    Every request is bounded by ``timeout``; transient failures are retried
    with exponential backoff and the last one is raised as UpstreamFetchFailure.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        max_attempts: Optional[int] = None,
        backoff: float = 0.5,
        session: Optional[requests.Session] = None,
        config: Optional[Settings] = None,
    ):
        config = config or default_settings
        self.api_key = api_key if api_key is not None else config.google_sheets_api_key
        self.base_url = (base_url or config.google_sheets_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else config.upstream_timeout_seconds
        self.max_attempts = max_attempts or config.upstream_max_attempts
        self.backoff = backoff
        self._session = session or requests.Session()

    def fetch_values(self, spreadsheet_id: Optional[str], cell_range: str) -> List[List[str]]:
        """
        Fetch the raw rows of a sheet range.

        Returns:
            List of rows (first row is the header); empty list if the range is empty

        Raises:
            UpstreamFetchFailure: Missing configuration, HTTP error, timeout or bad payload
        """
        if not spreadsheet_id or not self.api_key:
            raise UpstreamFetchFailure(
                "Missing spreadsheet id or Google Sheets API key"
            )

        url = f"{self.base_url}/spreadsheets/{spreadsheet_id}/values/{quote(cell_range, safe='!:')}"
        logger.info(f"Fetching sheet range {cell_range} from {spreadsheet_id}")

        fetch = retry(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff, min=self.backoff, max=5),
            retry=retry_if_exception_type(TransientSheetsError),
            reraise=True,
        )(self._get)

        try:
            payload = fetch(url)
        except TransientSheetsError as e:
            raise UpstreamFetchFailure(
                f"Sheets API unavailable after {self.max_attempts} attempts: {e}"
            ) from e

        if not isinstance(payload, dict):
            raise UpstreamFetchFailure("Unexpected Sheets API payload")

        values = payload.get("values") or []
        if not values:
            logger.warning(f"No data found in sheet range {cell_range}")
        return values

    def _get(self, url: str) -> Any:
        """Single request; raises TransientSheetsError for retryable failures."""
        try:
            response = self._session.get(
                url,
                params={"key": self.api_key},
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except (requests.Timeout, requests.ConnectionError) as e:
            logger.warning(f"Sheets request failed: {e}")
            raise TransientSheetsError(str(e)) from e
        except requests.RequestException as e:
            raise UpstreamFetchFailure(f"Sheets request failed: {e}") from e

        if response.status_code in RETRYABLE_STATUS:
            logger.warning(f"Sheets API returned HTTP {response.status_code}")
            raise TransientSheetsError(f"HTTP {response.status_code}")

        if response.status_code == 400:
            raise SheetRangeNotFound(f"HTTP 400: {response.reason}")

        if not response.ok:
            raise UpstreamFetchFailure(
                f"HTTP {response.status_code}: {response.reason}"
            )

        try:
            return response.json()
        except ValueError as e:
            raise UpstreamFetchFailure(f"Invalid JSON from Sheets API: {e}") from e


def rows_to_records(values: List[List[str]]) -> List[Dict[str, str]]:
    """
    Zip the header row with each data row.

    Short rows are padded with empty strings, as the API drops trailing blanks.
    """
    if not values:
        return []
    headers = [str(h).strip() for h in values[0]]
    records = []
    for row in values[1:]:
        records.append({
            header: (str(row[i]) if i < len(row) and row[i] is not None else "")
            for i, header in enumerate(headers)
        })
    return records
