from __future__ import annotations

import json
import logging
from typing import List, Set, Tuple

from .catalog import CatalogStore
from .models import Product
from .storage import KeyValueStore

logger = logging.getLogger("routine_advisor.selection")

SELECTED_IDS_KEY = "selectedProductIds"


class SelectionSet:
    """Persisted set of selected product ids; the single source of truth for selection."""

    def __init__(self, store: KeyValueStore, key: str = SELECTED_IDS_KEY) -> None:
        """Purpose: Initialize the selection and hydrate it from the store.
        Inputs/Outputs: Inputs are a KeyValueStore and the slot key; no return value.
        Side Effects / State: Loads ids into an in-memory set.
        Dependencies: Calls _load.
        Failure Modes: Missing or unparseable stored values leave an empty set.
        If Removed: Selections vanish on reload and the chip list cannot be rebuilt.
        Testing Notes: Seed the store with numeric ids and check they load as strings.
        """
        # Keep the store handle and restore the previous selection.
        self._store = store
        self._key = key
        self._ids: Set[str] = set()
        self._load()

    def _load(self) -> None:
        """Purpose: Read the persisted id list and normalize ids to strings.
        Inputs/Outputs: Reads the store slot; no return value.
        Side Effects / State: Replaces self._ids.
        Dependencies: json.loads.
        Failure Modes: Corrupt JSON or a non-list value yields an empty set.
        If Removed: The selection always starts empty.
        Testing Notes: Validate behavior with missing, corrupt, and mixed-type values.
        """
        # Decode the JSON array, tolerating corruption.
        raw = self._store.get(self._key)
        if not raw:
            return
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("selection key=%s status=corrupt action=reset", self._key)
            self._ids = set()
            return
        if not isinstance(data, list):
            self._ids = set()
            return
        self._ids = {str(item) for item in data if item is not None}

    def _persist(self) -> None:
        # One write per logical mutation, full member list.
        self._store.set(self._key, json.dumps(sorted(self._ids)))

    def toggle(self, product_id: object) -> bool:
        """Flip membership of ``product_id`` and return whether it is now selected."""
        pid = str(product_id)
        if pid in self._ids:
            self._ids.discard(pid)
            selected = False
        else:
            self._ids.add(pid)
            selected = True
        self._persist()
        logger.info("selection action=toggle id=%s selected=%s size=%d", pid, selected, len(self._ids))
        return selected

    def remove(self, product_id: object) -> None:
        self._ids.discard(str(product_id))
        self._persist()

    def clear(self) -> None:
        self._ids.clear()
        self._persist()

    def members(self) -> Set[str]:
        return set(self._ids)

    def __contains__(self, product_id: object) -> bool:
        return str(product_id) in self._ids

    def __len__(self) -> int:
        return len(self._ids)

    def resolve(self, catalog: CatalogStore) -> List[Product]:
        """Purpose: Map selected ids to catalog products.
        Inputs/Outputs: Input is the CatalogStore; returns products in catalog order.
        Side Effects / State: None.
        Dependencies: Uses the cached catalog list and its id rules.
        Failure Modes: Ids that no longer resolve are dropped without error.
        If Removed: Routine and follow-up payloads have no product context.
        Testing Notes: Remove a product from the catalog and verify it disappears here.
        """
        # Walk the catalog so output order is stable and stale ids fall away.
        products = catalog.products or []
        return [product for product in products if catalog.product_id(product) in self._ids]

    def labels(self, catalog: CatalogStore) -> List[Tuple[str, str]]:
        """Chip labels for every member; stale ids keep their raw id as the label."""
        entries: List[Tuple[str, str]] = []
        for pid in sorted(self._ids):
            product = catalog.find_by_id(pid)
            title = f"{product.name} — {product.brand}" if product else pid
            entries.append((pid, title))
        return entries
