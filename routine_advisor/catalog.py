from __future__ import annotations

"""Catalog document loading and id resolution.

The catalog is fetched once per session from a local path or an http(s) URL and
cached. Products without an ``id`` get a synthetic ``prod-<index>`` id taken from
their position in the full, unfiltered list, so ids stay stable across filters.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from .errors import FetchError
from .models import Product

logger = logging.getLogger("routine_advisor.catalog")


def effective_id(product: Product, index: int) -> str:
    """Return the product id, or the positional fallback when it is missing."""
    if product.id:
        return product.id
    return f"prod-{index}"


def parse_catalog(data: Any) -> List[Product]:
    """Build products from a decoded ``{products: [...]}`` document (or a bare list)."""
    if isinstance(data, dict):
        items = data.get("products")
    else:
        items = data
    if not isinstance(items, list):
        raise FetchError("catalog document has no products list")
    products: List[Product] = []
    for item in items:
        if not isinstance(item, dict):
            continue
        try:
            products.append(Product(**item))
        except ValidationError as exc:
            raise FetchError(f"invalid product entry: {exc}") from exc
    return products


class CatalogStore:
    """Session cache of the full product list with lazy, single-flight loading."""

    def __init__(self, source: str, client: Optional[httpx.AsyncClient] = None) -> None:
        self._source = source
        self._client = client
        self._products: Optional[List[Product]] = None
        self._ids: Dict[int, str] = {}
        self._loading: Optional[asyncio.Future] = None

    @property
    def products(self) -> Optional[List[Product]]:
        """Cached list, or None when the catalog has not been loaded yet."""
        return self._products

    async def load(self) -> List[Product]:
        """Purpose: Fetch and parse the catalog document, then cache it.
        Inputs/Outputs: No inputs; returns the full product list.
        Side Effects / State: Replaces the cached list and id index.
        Dependencies: Uses httpx for URLs, Path for local files, parse_catalog.
        Failure Modes: Network, IO, JSON, or schema problems raise FetchError.
        If Removed: Nothing can be browsed, filtered, or resolved.
        Testing Notes: Point at a temp file and at an httpx.MockTransport URL.
        """
        # Read raw bytes from the configured source and decode JSON.
        raw = await self._fetch()
        try:
            data = json.loads(raw.decode("utf-8-sig"))
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise FetchError(f"catalog is not valid JSON: {exc}") from exc
        products = parse_catalog(data)
        self.replace(products)
        logger.info("catalog source=%s products=%d", self._source, len(products))
        return products

    async def _fetch(self) -> bytes:
        if self._source.startswith(("http://", "https://")):
            try:
                if self._client is not None:
                    response = await self._client.get(self._source)
                else:
                    async with httpx.AsyncClient() as client:
                        response = await client.get(self._source)
                response.raise_for_status()
            except httpx.HTTPError as exc:
                raise FetchError(f"catalog request failed: {exc}") from exc
            return response.content
        try:
            return Path(self._source).read_bytes()
        except OSError as exc:
            raise FetchError(f"catalog file unreadable: {exc}") from exc

    async def all(self) -> List[Product]:
        """Return the cached list, loading it once if needed; concurrent callers share one load."""
        if self._products is not None:
            return self._products
        if self._loading is None:
            self._loading = asyncio.ensure_future(self.load())
        loading = self._loading
        try:
            return await loading
        finally:
            if self._loading is loading:
                self._loading = None

    def replace(self, products: List[Product]) -> None:
        """Swap the cached list; synthetic ids are recomputed from the new positions."""
        self._products = products
        self._ids = {id(product): effective_id(product, index) for index, product in enumerate(self._products)}

    def product_id(self, product: Product) -> str:
        # Identity lookup so duplicated records keep their own positional ids.
        pid = self._ids.get(id(product))
        if pid is not None:
            return pid
        if product.id:
            return product.id
        raise KeyError("product is not part of the cached catalog")

    def find_by_id(self, product_id: object) -> Optional[Product]:
        if not self._products:
            return None
        wanted = str(product_id)
        for index, product in enumerate(self._products):
            if effective_id(product, index) == wanted:
                return product
        return None

    def categories(self) -> List[str]:
        seen: List[str] = []
        for product in self._products or []:
            if product.category and product.category not in seen:
                seen.append(product.category)
        return seen
