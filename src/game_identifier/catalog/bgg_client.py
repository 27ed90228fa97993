"""
BoardGameGeek XML API detail provider.

Fetches ``/thing?id=<id>&stats=1`` and maps the XML onto GameDetails.
A configured bearer token is sent first; if BGG rejects it the request is
repeated without authentication.
"""
import html
import logging
import re
import xml.etree.ElementTree as ET
from typing import Optional

import httpx

from ..exceptions import DetailFetchError
from ..models import GameDetails, parse_float, parse_int, parse_rank
from .detail_provider import DetailProvider

logger = logging.getLogger(__name__)

BGG_API_BASE = "https://boardgamegeek.com/xmlapi2"

_TAG = re.compile(r"<[^>]*>")


class BGGDetailProvider(DetailProvider):
    """
    DetailProvider backed by the BoardGameGeek XML API.

    Usage:
        provider = BGGDetailProvider(token=os.getenv("BGG_API_TOKEN"))
        details = await provider.get_details("13")
    """

    def __init__(
        self,
        api_base: str = BGG_API_BASE,
        token: Optional[str] = None,
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        :param api_base: Base URL of the XML API
        :param token: Optional bearer token
        :param timeout: Request timeout in seconds
        :param client: Shared AsyncClient; a short-lived one is created per call if omitted
        """
        self.api_base = api_base.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._client = client

    async def get_details(self, entry_id: str) -> Optional[GameDetails]:
        if not entry_id:
            return None

        url = f"{self.api_base}/thing"
        params = {"id": str(entry_id), "stats": "1"}
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}

        try:
            response = await self._get(url, params, headers)
            if response.status_code in (401, 403) and headers:
                logger.info(f"BGG rejected token (HTTP {response.status_code}); retrying without auth")
                response = await self._get(url, params, {})
        except httpx.HTTPError as exc:
            raise DetailFetchError(f"BGG request failed for {entry_id}: {exc}") from exc

        if response.status_code >= 400:
            raise DetailFetchError(f"BGG returned HTTP {response.status_code} for {entry_id}")

        return parse_thing_xml(response.text)

    async def _get(self, url: str, params: dict, headers: dict) -> httpx.Response:
        if self._client is not None:
            return await self._client.get(url, params=params, headers=headers, timeout=self.timeout)
        async with httpx.AsyncClient(timeout=self.timeout, follow_redirects=True) as client:
            return await client.get(url, params=params, headers=headers)


def parse_thing_xml(xml_text: str) -> Optional[GameDetails]:
    """
    Parse a BGG ``thing`` response.

    :param xml_text: Raw XML body
    :return: GameDetails for the first item, or None if there is no item
    :raises DetailFetchError: If the body is not well-formed XML
    """
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as exc:
        raise DetailFetchError(f"Malformed BGG XML: {exc}") from exc

    item = root if root.tag == "item" else root.find("item")
    if item is None or not item.get("id"):
        return None

    name_element = item.find("name[@type='primary']")
    if name_element is None:
        name_element = item.find("name")

    ratings = item.find("statistics/ratings")
    average = None
    rank = None
    if ratings is not None:
        average = parse_float(_value(ratings, "average"))
        rank_element = ratings.find("ranks/rank[@type='subtype'][@id='1']")
        if rank_element is not None:
            rank = parse_rank(rank_element.get("value"))

    return GameDetails(
        id=item.get("id"),
        name=name_element.get("value") if name_element is not None else None,
        thumbnail=_text(item, "thumbnail"),
        image=_text(item, "image"),
        year_published=parse_int(_value(item, "yearpublished")),
        min_players=parse_int(_value(item, "minplayers")),
        max_players=parse_int(_value(item, "maxplayers")),
        playing_time=parse_int(_value(item, "playingtime")),
        min_age=parse_int(_value(item, "minage")),
        description=_clean_description(_text(item, "description")),
        average_rating=average,
        rank=rank,
    )


def _value(parent: ET.Element, tag: str) -> Optional[str]:
    element = parent.find(tag)
    return element.get("value") if element is not None else None


def _text(parent: ET.Element, tag: str) -> Optional[str]:
    element = parent.find(tag)
    if element is None or element.text is None:
        return None
    text = element.text.strip()
    return text or None


def _clean_description(text: Optional[str]) -> Optional[str]:
    if not text:
        return None
    cleaned = _TAG.sub("", html.unescape(text)).strip()
    return cleaned or None
