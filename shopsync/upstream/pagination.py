"""Cursor pagination over the Admin API's list endpoints.

List endpoints advertise the next page through a ``Link`` header::

    <https://shop.example/admin/api/2024-01/orders.json?limit=250&page_info=abc>; rel="next"

The ``page_info`` token is opaque: it is extracted and sent back unchanged.
"""

from __future__ import annotations

import re
import typing as typ

import httpx

from .errors import UpstreamError

if typ.TYPE_CHECKING:
    from .client import PageClient, QueryParams

PAGE_SIZE_MAX = 250

_LINK_SEPARATOR = re.compile(r",\s*(?=<)")
_REL_NEXT = re.compile(r"""rel\s*=\s*"?next\b""", re.IGNORECASE)


def next_page_cursor(headers: httpx.Headers | typ.Mapping[str, str]) -> str | None:
    """Return the ``page_info`` token of the ``rel="next"`` link, if any."""
    link_header = headers.get("link") or headers.get("Link")
    if not link_header:
        return None
    for part in _LINK_SEPARATOR.split(link_header):
        target, _, params = part.partition(";")
        if not _REL_NEXT.search(params):
            continue
        url = target.strip().removeprefix("<").removesuffix(">")
        cursor = httpx.URL(url).params.get("page_info")
        return cursor or None
    return None


class ResourceFetcher:
    """Lazily walk every page of one list endpoint.

    Iterating yields one list of raw records per page. The iterator is
    single-use: once exhausted (or failed) it cannot be restarted. Retries are
    the client's concern; any client error propagates to the consumer.
    """

    def __init__(  # noqa: PLR0913
        self,
        client: PageClient,
        path: str,
        *,
        collection_key: str,
        page_size: int = PAGE_SIZE_MAX,
        initial_query: QueryParams | None = None,
    ) -> None:
        """Configure the endpoint, the JSON key holding records and the page size."""
        if not 1 <= page_size <= PAGE_SIZE_MAX:
            msg = f"page_size must be between 1 and {PAGE_SIZE_MAX}, got: {page_size}"
            raise ValueError(msg)
        self._client = client
        self._path = path
        self._collection_key = collection_key
        self._page_size = page_size
        self._initial_query = dict(initial_query or {})
        self._started = False
        self.pages_fetched = 0

    def __aiter__(self) -> typ.AsyncIterator[list[dict[str, typ.Any]]]:
        """Return the page iterator; a fetcher may only be iterated once."""
        if self._started:
            msg = f"fetcher for {self._path} has already been consumed"
            raise RuntimeError(msg)
        self._started = True
        return self._iter_pages()

    async def _iter_pages(self) -> typ.AsyncIterator[list[dict[str, typ.Any]]]:
        # Follow-up pages accept only limit and page_info.
        query: dict[str, str | int] = {"limit": self._page_size, **self._initial_query}
        while True:
            response = await self._client.get_page(self._path, query)
            self.pages_fetched += 1
            yield self._records(response.payload)

            cursor = next_page_cursor(response.headers)
            if cursor is None:
                return
            query = {"limit": self._page_size, "page_info": cursor}

    def _records(self, payload: object) -> list[dict[str, typ.Any]]:
        if not isinstance(payload, dict):
            kind = type(payload).__name__
            msg = f"expected a JSON object from {self._path}, got {kind}"
            raise UpstreamError(msg)
        records = payload.get(self._collection_key)
        if records is None:
            return []
        if not isinstance(records, list):
            raise UpstreamError(
                f"{self._path} field {self._collection_key!r} is not a list"
            )
        return [record for record in records if isinstance(record, dict)]
