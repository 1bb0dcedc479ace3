from __future__ import annotations

"""HTML projections of the advisor state.

Every function here is pure: it takes plain values and returns markup, so rendering
can be tested without a running app or a browser.
"""

from html import escape
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from .models import ConversationMessage, FilterCriteria, Product

SELECT_CATEGORY_PLACEHOLDER = "Select a category to view products"
NO_MATCH_PLACEHOLDER = "No products match your search."
NO_SELECTION_PLACEHOLDER = "No products selected"
NO_DESCRIPTION = "No description available."

ROLE_LABELS = {"user": "You", "assistant": "Advisor"}


def _placeholder(text: str) -> str:
    return f'<div class="placeholder-message">{escape(text)}</div>'


def render_product_card(product: Product, product_id: str, selected: bool) -> str:
    css = "product-card selected" if selected else "product-card"
    return (
        f'<div class="{css}" data-id="{escape(product_id)}">'
        f'<img src="{escape(product.image or "")}" alt="{escape(product.name)}">'
        '<div class="product-info">'
        f"<h3>{escape(product.name)}</h3>"
        f'<p class="brand">{escape(product.brand)}</p>'
        '<button class="desc-toggle" aria-expanded="false">Details</button>'
        f'<div class="product-desc" hidden>{escape(product.description or NO_DESCRIPTION)}</div>'
        "</div>"
        "</div>"
    )


def render_catalog(
    visible: Optional[Sequence[Product]],
    criteria: Optional[FilterCriteria],
    selected: Iterable[str],
    id_of: Callable[[Product], str],
) -> str:
    """Render exactly one of: the select-category placeholder, the no-match
    placeholder, or the product grid."""
    if criteria is None or visible is None:
        return _placeholder(SELECT_CATEGORY_PLACEHOLDER)
    if not visible:
        return _placeholder(NO_MATCH_PLACEHOLDER)
    members = set(selected)
    cards = []
    for product in visible:
        pid = id_of(product)
        cards.append(render_product_card(product, pid, pid in members))
    return "".join(cards)


def render_selected(labels: Sequence[Tuple[str, str]]) -> str:
    if not labels:
        return f'<div class="none">{NO_SELECTION_PLACEHOLDER}</div>'
    chips: List[str] = []
    for pid, title in labels:
        chips.append(
            f'<div class="selected-chip" data-id="{escape(pid)}">'
            f"<span>{escape(title)}</span>"
            f'<button class="remove-chip" aria-label="Remove {escape(title)}">&times;</button>'
            "</div>"
        )
    return "".join(chips)


def render_chat(messages: Sequence[ConversationMessage]) -> str:
    lines = [
        f'<div class="chat-line {message.role}"><strong>{ROLE_LABELS[message.role]}:</strong> '
        f"{escape(message.text)}</div>"
        for message in messages
    ]
    # The page scrolls any container marked data-autoscroll to its newest line.
    return f'<div class="chat-log" data-autoscroll="bottom">{"".join(lines)}</div>'
