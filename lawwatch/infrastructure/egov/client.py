"""
e-Gov Law API Client

Fetches the full law list and single-law detail from the e-Gov law API
(version 1, XML). Every outbound request first waits for a slot on the
injected rate limiter. Failures are returned as ``Err`` results.
"""

import asyncio
import time
import xml.etree.ElementTree as ET
from typing import List, Optional, Tuple

import aiohttp

from lawwatch.core.config import EGovSettings, settings
from lawwatch.core.domain.entities import Instrument, RegistryFetch, utc_now
from lawwatch.core.enums import InstrumentStatus
from lawwatch.core.exceptions import (
    NotFoundError, ParsingError, RateLimitError, UpstreamFetchError
)
from lawwatch.core.logging_config import get_logger
from lawwatch.core.result import Result, Ok, Err
from lawwatch.services.rate_limiter import RateLimiter, RateLimitConfig

# Offsets from Japanese era years to Gregorian years
ERA_OFFSETS = {
    'Meiji': 1867,
    'Taisho': 1911,
    'Showa': 1925,
    'Heisei': 1988,
    'Reiwa': 2018,
}

# The law list endpoint covers every category with category code 1
ALL_LAWS_CATEGORY = 1

# ======================== PARSING ========================

def format_date(value: Optional[str]) -> str:
    """'19470503' or '1947/5/3' -> '1947-05-03'; other strings pass through."""
    if not value:
        return ""
    value = value.strip()
    if len(value) == 8 and value.isdigit():
        return f"{value[0:4]}-{value[4:6]}-{value[6:8]}"
    parts = value.split('/')
    if len(parts) == 3:
        return f"{parts[0]}-{parts[1].zfill(2)}-{parts[2].zfill(2)}"
    return value


def _text(element: Optional[ET.Element], tag: str) -> str:
    if element is None:
        return ""
    found = element.find(f".//{tag}")
    if found is None or found.text is None:
        return ""
    return found.text.strip()


def _parse_root(xml_text: str) -> ET.Element:
    try:
        return ET.fromstring(xml_text)
    except ET.ParseError as e:
        raise ParsingError("XML", str(e), cause=e) from e


def _check_result_code(root: ET.Element, law_id: Optional[str] = None) -> None:
    code = _text(root.find("Result"), "Code")
    if code in ("", "0"):
        return
    message = _text(root.find("Result"), "Message") or f"result code {code}"
    if law_id is not None:
        raise NotFoundError("Law", law_id, details={"upstream_message": message})
    raise UpstreamFetchError(f"e-Gov API error: {message}")


def parse_law_list(xml_text: str, default_category: str) -> List[Instrument]:
    """Instruments listed under ``LawNameListInfo``; entries without id or name are skipped."""
    root = _parse_root(xml_text)
    _check_result_code(root)

    instruments = []
    for info in root.iter("LawNameListInfo"):
        law_id = _text(info, "LawId")
        law_name = _text(info, "LawName")
        if not law_id or not law_name:
            continue
        instruments.append(Instrument(
            id=law_id,
            name=law_name,
            number=_text(info, "LawNo"),
            category=default_category,
            status=InstrumentStatus.IN_FORCE.value,
            promulgation_date=format_date(_text(info, "PromulgationDate")),
        ))
    return instruments


def parse_law_detail(xml_text: str, law_id: str, default_category: str) -> Instrument:
    """Instrument from a ``lawdata`` response; the promulgation date comes from the era attributes."""
    root = _parse_root(xml_text)
    _check_result_code(root, law_id=law_id)

    law = root.find(".//Law")
    promulgation_date = ""
    if law is not None:
        era = law.get("Era", "")
        year = law.get("Year", "")
        month = law.get("PromulgateMonth", "")
        day = law.get("PromulgateDay", "")
        if year.isdigit() and month and day:
            western_year = int(year) + ERA_OFFSETS.get(era, 0)
            promulgation_date = f"{western_year}-{month.zfill(2)}-{day.zfill(2)}"

    name = _text(root, "LawTitle")
    if not name:
        raise ParsingError("XML", f"law {law_id} has no title")

    effect = _text(root, "Effect")
    return Instrument(
        id=law_id,
        name=name,
        number=_text(root, "LawNum"),
        category=default_category,
        status=InstrumentStatus.from_effect(effect).value if effect else InstrumentStatus.IN_FORCE.value,
        promulgation_date=promulgation_date,
    )

# ======================== CLIENT ========================

class EGovClient:
    """
    Rate-limited async client for the e-Gov law API.

    Features:
    - Full law list and single-law detail
    - Sliding-window rate limiting through an injected ``RateLimiter``
    - Failures normalized into ``Err`` results
    """

    def __init__(
        self,
        config: Optional[EGovSettings] = None,
        rate_limiter: Optional[RateLimiter] = None
    ):
        self.config = config or settings.egov
        self.rate_limiter = rate_limiter or RateLimiter(RateLimitConfig(
            max_requests=self.config.rate_limit_max_requests,
            window_ms=self.config.rate_limit_window_ms,
        ))
        self.headers = {
            'User-Agent': self.config.user_agent,
            'Accept': 'application/xml, text/xml',
        }
        self.logger = get_logger(__name__)

    async def fetch_all(self) -> Result[RegistryFetch]:
        url = f"{self.config.base_url}/lawlists/{ALL_LAWS_CATEGORY}"
        start = time.perf_counter()

        try:
            xml_text = await self._get(url)
            instruments = parse_law_list(xml_text, self.config.default_category)
        except (UpstreamFetchError, NotFoundError, RateLimitError) as e:
            return Err(e.message, e.error_code)

        self.logger.info(
            f"Fetched {len(instruments)} laws",
            extra={"url": url, "duration_ms": int((time.perf_counter() - start) * 1000)}
        )
        return Ok(RegistryFetch(
            instruments=instruments,
            total_count=len(instruments),
            last_updated=utc_now(),
        ))

    async def fetch_detail(self, law_id: str) -> Result[Instrument]:
        url = f"{self.config.base_url}/lawdata/{law_id}"

        try:
            xml_text = await self._get(url, law_id=law_id)
            instrument = parse_law_detail(xml_text, law_id, self.config.default_category)
        except (UpstreamFetchError, NotFoundError, RateLimitError) as e:
            return Err(e.message, e.error_code)

        self.logger.info(f"Fetched law detail {law_id}", extra={"law_id": law_id})
        return Ok(instrument)

    async def _get(self, url: str, law_id: Optional[str] = None) -> str:
        """GET ``url`` after waiting for a rate limit slot; raises on transport or HTTP errors."""
        await self.rate_limiter.wait_for_slot()

        status, body = await self._request(url)

        if status == 404 and law_id is not None:
            raise NotFoundError("Law", law_id)
        if status == 429:
            raise RateLimitError(
                self.config.rate_limit_max_requests,
                self.config.rate_limit_window_ms,
                retry_after_ms=self.config.rate_limit_window_ms,
                details={"url": url, "status_code": status}
            )
        if status >= 400:
            raise UpstreamFetchError(f"HTTP error! status: {status}", url=url, status_code=status)
        return body

    async def _request(self, url: str) -> Tuple[int, str]:
        timeout = aiohttp.ClientTimeout(total=self.config.timeout_seconds)
        try:
            async with aiohttp.ClientSession(headers=self.headers, timeout=timeout) as session:
                async with session.get(url) as response:
                    return response.status, await response.text()
        except asyncio.TimeoutError as e:
            raise UpstreamFetchError(
                f"Request timed out after {self.config.timeout_seconds}s", url=url, cause=e
            ) from e
        except aiohttp.ClientError as e:
            raise UpstreamFetchError(f"Network error: {e}", url=url, cause=e) from e
