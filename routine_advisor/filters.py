from __future__ import annotations

from typing import List, Sequence

from .models import FilterCriteria, Product


def search_text(product: Product) -> str:
    # Missing fields contribute an empty string.
    parts = [product.name, product.brand, product.description or "", product.category]
    return " ".join(parts).lower()


def apply_filters(products: Sequence[Product], criteria: FilterCriteria) -> List[Product]:
    """Return the visible subset of ``products``.

    Category is an exact, case-sensitive match; the query is a lowercase substring
    match over name, brand, description and category. Both stages compose with AND,
    an empty stage is skipped, and catalog order is preserved.
    """
    category = criteria.category or ""
    query = (criteria.query or "").strip().lower()
    out: List[Product] = []
    for product in products:
        if category and product.category != category:
            continue
        if query and query not in search_text(product):
            continue
        out.append(product)
    return out
