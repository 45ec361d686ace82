"""GFBio portal basket lookup.

Fetches the search baskets a GFBio portal (Liferay) user saved and
reshapes them into the records the map client shows in its data panel.
"""

import logging
from datetime import UTC, datetime
from typing import Any

import httpx

from mapping_portal.exceptions import UpstreamError
from mapping_portal.settings import Settings

logger = logging.getLogger(__name__)

PANGAEA_DOI_MARKER = "doi.pangaea.de/"


def _format_timestamp(value: Any) -> str:
    """Render the portal's last-modified value as ``YYYY-MM-DDTHH:MM:SSZ``.

    The portal sends epoch milliseconds; ISO strings are accepted too.
    Anything else is passed through as text.
    """
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, int | float):
        moment = datetime.fromtimestamp(value / 1000, tz=UTC)
    elif isinstance(value, str):
        try:
            moment = datetime.fromisoformat(value)
        except ValueError:
            return value
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=UTC)
    else:
        return "" if value is None else str(value)
    return moment.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_result(entry: dict[str, Any]) -> dict[str, str]:
    """Reshape one selected search hit."""
    metadata_link = str(entry.get("metadatalink") or "")
    result = {
        "title": str(entry.get("title") or ""),
        "authors": str(entry.get("authors") or ""),
        "dataCenter": str(entry.get("dataCenter") or ""),
        "metadataLink": metadata_link,
    }
    marker = metadata_link.find(PANGAEA_DOI_MARKER)
    if marker >= 0:
        result["type"] = "pangaea"
        result["doi"] = metadata_link[marker + len(PANGAEA_DOI_MARKER):]
    else:
        result["type"] = "abcd"
    return result


def parse_basket(basket: dict[str, Any]) -> dict[str, Any]:
    """Reshape one portal basket.

    Raises:
        KeyError, IndexError, TypeError: If the basket lacks the expected structure
    """
    query = basket["queryJSON"][0]["query"]["function_score"]["query"]["filtered"]["query"][
        "simple_query_string"
    ]["query"]
    selected = basket["basketContent"][0]["selected"]
    return {
        "query": str(query),
        "datetime": _format_timestamp(basket.get("lastModifiedDate")),
        "results": [parse_result(entry) for entry in selected],
    }


def parse_baskets(payload: Any) -> list[dict[str, Any]]:
    """Reshape the portal's basket list, skipping malformed baskets.

    Raises:
        UpstreamError: If the payload is not a list of baskets
    """
    if not isinstance(payload, list):
        raise UpstreamError("GFBio portal returned an unexpected basket payload")

    baskets = []
    for basket in payload:
        try:
            baskets.append(parse_basket(basket))
        except (KeyError, IndexError, TypeError) as e:
            logger.warning("Skipping malformed GFBio basket: %s", type(e).__name__)
    return baskets


class GFBioClient:
    """Client for the GFBio portal basket web service."""

    def __init__(
        self,
        basket_url: str,
        *,
        username: str = "",
        password: str = "",
        proxy: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.basket_url = basket_url
        self.username = username
        self.password = password
        self.proxy = proxy
        self.timeout = timeout
        self._transport = transport
        self._http_client: httpx.AsyncClient | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "GFBioClient":
        return cls(
            settings.gfbio_basket_url,
            username=settings.gfbio_username,
            password=settings.gfbio_password.get_secret_value(),
            proxy=settings.gfbio_proxy,
            timeout=settings.gfbio_timeout_seconds,
        )

    @property
    def configured(self) -> bool:
        return bool(self.basket_url)

    def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create the shared AsyncClient."""
        if self._http_client is None:
            kwargs: dict[str, Any] = {"timeout": self.timeout}
            if self.username:
                kwargs["auth"] = httpx.BasicAuth(self.username, self.password)
            if self._transport is not None:
                kwargs["transport"] = self._transport
            elif self.proxy:
                kwargs["proxy"] = self.proxy
            self._http_client = httpx.AsyncClient(**kwargs)
        return self._http_client

    async def close(self) -> None:
        """Close the shared HTTP client and release connections."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    async def get_baskets(self, liferay_id: str) -> list[dict[str, Any]]:
        """Fetch and reshape the baskets of a portal user.

        Args:
            liferay_id: Portal user id

        Returns:
            List of ``{query, datetime, results}`` records

        Raises:
            UpstreamError: Lookup disabled (503), or the portal failed (502)
        """
        if not self.configured:
            raise UpstreamError("GFBio basket lookup is not configured", status_code=503)

        client = self._get_http_client()
        try:
            response = await client.get(self.basket_url, params={"userId": liferay_id})
        except httpx.TimeoutException as e:
            raise UpstreamError("GFBio portal timed out") from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"Could not retrieve baskets from GFBio portal: {type(e).__name__}") from e

        if not response.is_success:
            raise UpstreamError(f"GFBio portal answered HTTP {response.status_code}")
        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamError("Could not parse baskets from GFBio portal") from e

        baskets = parse_baskets(payload)
        logger.info("Fetched %d GFBio baskets", len(baskets))
        return baskets
