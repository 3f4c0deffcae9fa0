"""
Treasury.gov Yield Curve Feed
Fetches the daily par yield curve XML feed, one document per calendar year

Each <entry> carries NEW_DATE plus one BC_* field per term.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional

import httpx
from bs4 import BeautifulSoup

from treasury_app.domain.errors import FetchError

logger = logging.getLogger(__name__)

ISO_DATE_LENGTH = 10

# Feed field per term, in curve order
FEED_FIELDS: Dict[str, str] = {
    "1M": "BC_1MONTH",
    "3M": "BC_3MONTH",
    "6M": "BC_6MONTH",
    "1Y": "BC_1YEAR",
    "2Y": "BC_2YEAR",
    "5Y": "BC_5YEAR",
    "10Y": "BC_10YEAR",
    "30Y": "BC_30YEAR",
}


@dataclass(frozen=True)
class FeedEntry:
    """One trading day from the feed"""
    raw_date: str
    rates: Dict[str, Optional[Decimal]]

    @property
    def trade_date(self) -> Optional[date]:
        """Parsed trading date, None when the feed date is malformed"""
        try:
            return datetime.strptime(self.raw_date[:ISO_DATE_LENGTH], "%Y-%m-%d").date()
        except ValueError:
            return None

    def rate(self, term: str) -> Optional[Decimal]:
        return self.rates.get(term)


def _parse_rate(text: Optional[str]) -> Optional[Decimal]:
    if text is None:
        return None
    text = text.strip()
    if not text:
        return None
    try:
        value = Decimal(text)
    except InvalidOperation:
        return None
    if not value.is_finite():
        return None
    return value


def parse_feed(xml_text: str) -> List[FeedEntry]:
    """
    Parse a yield curve XML document into feed entries (document order).

    Raises:
        FetchError: document is not parseable XML
    """
    if not xml_text or not xml_text.strip():
        raise FetchError("failed to parse XML: empty document")

    try:
        soup = BeautifulSoup(xml_text, "xml")
    except Exception as e:
        raise FetchError(f"failed to parse XML: {e}") from e

    if soup.find() is None:
        raise FetchError("failed to parse XML: no root element")

    entries: List[FeedEntry] = []
    for node in soup.find_all("entry"):
        date_tag = node.find("NEW_DATE")
        raw_date = date_tag.get_text(strip=True) if date_tag is not None else ""

        rates: Dict[str, Optional[Decimal]] = {}
        for term, field_name in FEED_FIELDS.items():
            tag = node.find(field_name)
            rates[term] = _parse_rate(tag.get_text() if tag is not None else None)

        entries.append(FeedEntry(raw_date=raw_date, rates=rates))

    return entries


class TreasuryFeedClient:
    """
    Async client for the Treasury.gov yield curve feed

    Single-year fetches use `timeout`; spans of several years are fetched
    in parallel (one request per year) under `multi_year_timeout`.
    """

    HEADERS = {
        "User-Agent": "treasury-ledger/1.0",
        "Accept": "application/xml, text/xml;q=0.9, */*;q=0.8",
    }

    def __init__(
        self,
        url_template: str,
        timeout: float = 10.0,
        multi_year_timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url_template = url_template
        self.timeout = timeout
        self.multi_year_timeout = multi_year_timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                headers=self.HEADERS,
                timeout=self.timeout,
                follow_redirects=True,
                transport=self._transport,
            )
        return self._client

    def url_for_year(self, year: int) -> str:
        return self.url_template.format(year=year)

    async def fetch_year(self, year: int, timeout: Optional[float] = None) -> List[FeedEntry]:
        """
        Fetch and parse the feed for one calendar year.

        Raises:
            FetchError: transport failure, timeout, non-2xx status or bad XML
        """
        url = self.url_for_year(year)
        started = time.perf_counter()
        try:
            response = await self._get_client().get(url, timeout=timeout or self.timeout)
        except httpx.TimeoutException as e:
            raise FetchError(f"treasury feed timed out for year {year}") from e
        except httpx.HTTPError as e:
            raise FetchError(f"failed to fetch treasury data for year {year}: {e}") from e

        if not response.is_success:
            raise FetchError(
                f"treasury API returned status {response.status_code} for year {year}"
            )

        try:
            entries = parse_feed(response.text)
        except FetchError as e:
            raise FetchError(f"{e.message} (year {year})") from e

        logger.info(
            "Fetched treasury feed for %s: %s entries in %.2fs",
            year, len(entries), time.perf_counter() - started,
        )
        return entries

    async def fetch_years(self, start_year: int, end_year: int) -> List[FeedEntry]:
        """
        Fetch every year in [start_year, end_year] concurrently and merge
        the entries in year order. Any failing year aborts the whole fetch.
        """
        if end_year < start_year:
            raise ValueError("end_year must be >= start_year")

        years = list(range(start_year, end_year + 1))
        timeout = self.timeout if len(years) == 1 else self.multi_year_timeout

        tasks = [
            asyncio.create_task(self.fetch_year(year, timeout=timeout), name=f"treasury-feed-{year}")
            for year in years
        ]
        try:
            await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        finally:
            # First failure (or caller cancellation) stops the remaining years
            pending = [task for task in tasks if not task.done()]
            for task in pending:
                task.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        for year, task in zip(years, tasks):
            if task.cancelled():
                continue
            error = task.exception()
            if error is not None:
                logger.warning("Treasury feed fetch failed for %s: %s", year, error)
                raise error

        merged: List[FeedEntry] = []
        for task in tasks:
            merged.extend(task.result())
        return merged

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None
