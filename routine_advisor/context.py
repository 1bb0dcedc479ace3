from __future__ import annotations

"""Outbound payload assembly for the generation endpoint.

Both builders are deterministic: identical inputs give identical payloads, with no
timestamps or random ids, so payloads can be compared verbatim in tests.
"""

from typing import Any, Dict, Sequence

from .conversation import ConversationLog
from .models import Product
from .prompt_loader import DEFAULT_SYSTEM_PROMPT

ROUTINE_INSTRUCTION = "Generate a personalized routine using the selected products:"
NO_PRODUCTS_SUMMARY = "No selected products."


def _category(product: Product) -> str:
    return product.category or "N/A"


def routine_line(product: Product) -> str:
    return f"- {product.name} ({product.brand}) — {_category(product)}: {product.description or ''}"


def summary_line(product: Product) -> str:
    return f"- {product.name} ({product.brand}) — {_category(product)}"


def routine_request_text(products: Sequence[Product]) -> str:
    """Visible user message recorded when a routine is requested."""
    return "Generate routine for selected products: " + ", ".join(product.name for product in products)


def build_routine_payload(
    products: Sequence[Product],
    system_prompt: str = DEFAULT_SYSTEM_PROMPT,
) -> Dict[str, Any]:
    """Purpose: Build the routine-generation request body.
    Inputs/Outputs: Inputs are the selected products and system prompt; returns a
        JSON-ready dict with raw ``products`` and chat ``messages``.
    Side Effects / State: None; pure function.
    Dependencies: routine_line for the bullet list.
    Failure Modes: None; empty product lists still produce a valid payload.
    If Removed: Routine requests have no product context.
    Testing Notes: Compare the output to a golden dict.
    """
    # One system instruction plus one user message holding the bullet list.
    lines = "\n".join(routine_line(product) for product in products)
    return {
        "products": [product.raw() for product in products],
        "messages": [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": f"{ROUTINE_INSTRUCTION}\n{lines}"},
        ],
    }


def build_followup_payload(
    conversation: ConversationLog,
    products: Sequence[Product],
    question: str,
    system_prompt: str = DEFAULT_SYSTEM_PROMPT,
) -> Dict[str, Any]:
    """Purpose: Build the follow-up question request body.
    Inputs/Outputs: Inputs are the conversation so far, selected products, the
        question, and the system prompt; returns a JSON-ready dict.
    Side Effects / State: None; pure function.
    Dependencies: summary_line; ConversationLog.to_messages for the prior turns.
    Failure Modes: None.
    If Removed: Follow-up answers lose the routine and product context.
    Testing Notes: Verify message order and the no-products sentinel.
    """
    # Prior turns in order, then a final user turn combining products and question.
    prior = conversation.to_messages()
    summary = "\n".join(summary_line(product) for product in products) or NO_PRODUCTS_SUMMARY
    return {
        "conversation": [message.model_dump() for message in conversation.all()],
        "products": [product.raw() for product in products],
        "question": question,
        "messages": [
            {"role": "system", "content": system_prompt},
            *prior,
            {"role": "user", "content": f"Products in context:\n{summary}\n\nQuestion: {question}"},
        ],
    }
