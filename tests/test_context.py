import json

from routine_advisor.context import (
    NO_PRODUCTS_SUMMARY,
    build_followup_payload,
    build_routine_payload,
    routine_request_text,
)
from routine_advisor.conversation import ConversationLog
from routine_advisor.models import Product
from routine_advisor.storage import MemoryStore

from .conftest import make_products


def test_routine_payload_golden():
    products = make_products()[:2]
    payload = build_routine_payload(products, system_prompt="SYSTEM")
    assert payload == {
        "products": [
            {"id": "1", "name": "Foaming Cleanser", "brand": "CeraVe", "category": "cleanser", "description": "Gentle foam wash"},
            {"id": "2", "name": "Daily Moisturizer", "brand": "La Roche-Posay", "category": "moisturizer"},
        ],
        "messages": [
            {"role": "system", "content": "SYSTEM"},
            {
                "role": "user",
                "content": (
                    "Generate a personalized routine using the selected products:\n"
                    "- Foaming Cleanser (CeraVe) — cleanser: Gentle foam wash\n"
                    "- Daily Moisturizer (La Roche-Posay) — moisturizer: "
                ),
            },
        ],
    }


def test_missing_category_renders_na():
    product = Product(id="x", name="Mystery", brand="Acme")
    payload = build_routine_payload([product])
    assert payload["messages"][1]["content"].endswith("- Mystery (Acme) — N/A: ")


def test_followup_payload_order_and_context():
    conversation = ConversationLog(MemoryStore())
    conversation.append("user", "Generate routine for selected products: Foaming Cleanser")
    conversation.append("assistant", "Step 1: cleanse.")
    conversation.append("user", "Morning or night?")
    products = make_products()[:1]
    payload = build_followup_payload(conversation, products, "Morning or night?", system_prompt="SYSTEM")

    assert payload["question"] == "Morning or night?"
    assert payload["conversation"] == [
        {"role": "user", "text": "Generate routine for selected products: Foaming Cleanser"},
        {"role": "assistant", "text": "Step 1: cleanse."},
        {"role": "user", "text": "Morning or night?"},
    ]
    assert payload["products"] == [products[0].raw()]
    assert payload["messages"] == [
        {"role": "system", "content": "SYSTEM"},
        {"role": "user", "content": "Generate routine for selected products: Foaming Cleanser"},
        {"role": "assistant", "content": "Step 1: cleanse."},
        {"role": "user", "content": "Morning or night?"},
        {
            "role": "user",
            "content": "Products in context:\n- Foaming Cleanser (CeraVe) — cleanser\n\nQuestion: Morning or night?",
        },
    ]


def test_followup_without_products_uses_sentinel():
    payload = build_followup_payload(ConversationLog(MemoryStore()), [], "Anything?")
    assert payload["messages"][-1]["content"] == f"Products in context:\n{NO_PRODUCTS_SUMMARY}\n\nQuestion: Anything?"
    assert len(payload["messages"]) == 2


# Identical inputs produce byte-identical payloads
def test_payloads_are_deterministic():
    products = make_products()
    conversation = ConversationLog(MemoryStore())
    conversation.append("user", "hi")
    first = json.dumps(build_followup_payload(conversation, products, "q"), sort_keys=False)
    second = json.dumps(build_followup_payload(conversation, products, "q"), sort_keys=False)
    assert first == second
    assert json.dumps(build_routine_payload(products)) == json.dumps(build_routine_payload(products))


def test_routine_request_text_lists_names():
    assert routine_request_text(make_products()[:2]) == (
        "Generate routine for selected products: Foaming Cleanser, Daily Moisturizer"
    )
