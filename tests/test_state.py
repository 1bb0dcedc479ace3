import asyncio

import pytest

from routine_advisor.catalog import CatalogStore
from routine_advisor.conversation import ConversationLog
from routine_advisor.errors import FetchError, GenerationInProgress, RemoteRejection
from routine_advisor.selection import SelectionSet
from routine_advisor.state import (
    CATALOG_FAILURE_REPLY,
    EMPTY_SELECTION_REPLY,
    FOLLOWUP_FAILURE_REPLY,
    ROUTINE_FAILURE_REPLY,
    AdvisorState,
    UnknownAction,
)
from routine_advisor.storage import MemoryStore
from routine_advisor.views import NO_MATCH_PLACEHOLDER, NO_SELECTION_PLACEHOLDER, SELECT_CATEGORY_PLACEHOLDER

from .conftest import StubGenerator


def log_of(advisor):
    return [(m.role, m.text) for m in advisor.conversation.all()]


async def test_generate_without_selection_asks_for_products(advisor, generator):
    await advisor.generate_routine()
    assert log_of(advisor) == [("assistant", EMPTY_SELECTION_REPLY)]
    assert generator.payloads == []


async def test_generate_routine_uses_catalog_order(advisor, generator):
    advisor.toggle("2")
    advisor.toggle("1")

    await advisor.generate_routine()

    assert log_of(advisor) == [
        ("user", "Generate routine for selected products: Foaming Cleanser, Daily Moisturizer"),
        ("assistant", "Step 1: cleanse."),
    ]
    payload = generator.payloads[0]
    assert [p["name"] for p in payload["products"]] == ["Foaming Cleanser", "Daily Moisturizer"]
    assert payload["messages"][0] == {"role": "system", "content": "SYSTEM"}


async def test_rejection_detail_replaces_placeholder(advisor, generator):
    generator.error = RemoteRejection(500, "boom")
    advisor.toggle("1")
    await advisor.generate_routine()
    assert log_of(advisor)[-1] == ("assistant", "Error from worker: boom")
    assert len(advisor.conversation) == 2


async def test_transport_failure_uses_generic_reply(advisor, generator):
    generator.error = FetchError("down")
    advisor.toggle("1")
    await advisor.generate_routine()
    assert log_of(advisor)[-1] == ("assistant", ROUTINE_FAILURE_REPLY)

    await advisor.ask("Still there?")
    assert log_of(advisor)[-1] == ("assistant", FOLLOWUP_FAILURE_REPLY)


async def test_unexpected_error_does_not_escape(advisor, generator):
    generator.error = RuntimeError("bug")
    advisor.toggle("1")
    await advisor.generate_routine()
    assert log_of(advisor)[-1] == ("assistant", ROUTINE_FAILURE_REPLY)
    assert not advisor.in_flight


async def test_blank_question_is_ignored(advisor, generator):
    await advisor.ask("   ")
    assert len(advisor.conversation) == 0
    assert generator.payloads == []


async def test_ask_sends_history_and_products(advisor, generator):
    advisor.toggle("prod-2")
    await advisor.generate_routine()
    generator.reply = "Use it at night."

    await advisor.ask("  When should I use it?  ")

    payload = generator.payloads[-1]
    assert payload["question"] == "When should I use it?"
    assert [m["text"] for m in payload["conversation"]] == [
        "Generate routine for selected products: Micellar Water",
        "Step 1: cleanse.",
        "When should I use it?",
    ]
    assert payload["messages"][-1]["content"] == (
        "Products in context:\n- Micellar Water (Garnier) — cleanser\n\nQuestion: When should I use it?"
    )
    assert log_of(advisor)[-2:] == [("user", "When should I use it?"), ("assistant", "Use it at night.")]


async def test_overlapping_requests_are_refused(advisor):
    release = asyncio.Event()

    class SlowGenerator:
        async def complete(self, payload):
            await release.wait()
            return "done"

    advisor.generator = SlowGenerator()
    advisor.toggle("1")
    first = asyncio.ensure_future(advisor.generate_routine())
    await asyncio.sleep(0)
    assert advisor.in_flight

    with pytest.raises(GenerationInProgress):
        await advisor.ask("another?")
    with pytest.raises(GenerationInProgress):
        await advisor.generate_routine()

    release.set()
    await first
    assert log_of(advisor)[-1] == ("assistant", "done")
    assert not advisor.in_flight


async def test_catalog_failure_is_reported_in_chat(tmp_path):
    store = MemoryStore()
    advisor = AdvisorState(
        catalog=CatalogStore(str(tmp_path / "missing.json")),
        selection=SelectionSet(store),
        conversation=ConversationLog(store),
        generator=StubGenerator(),
    )
    snapshot = await advisor.dispatch("filter", category="cleanser", query="")
    assert (snapshot.messages[-1].role, snapshot.messages[-1].text) == ("assistant", CATALOG_FAILURE_REPLY)
    assert SELECT_CATEGORY_PLACEHOLDER in snapshot.catalog_html


async def test_unknown_action_raises(advisor):
    with pytest.raises(UnknownAction):
        await advisor.dispatch("explode")


async def test_snapshot_before_any_filter(advisor):
    snapshot = advisor.snapshot()
    assert SELECT_CATEGORY_PLACEHOLDER in snapshot.catalog_html
    assert NO_SELECTION_PLACEHOLDER in snapshot.selected_html
    assert snapshot.categories == ["cleanser", "moisturizer"]
    assert snapshot.selected_ids == []


async def test_dispatch_filter_and_toggle(advisor):
    snapshot = await advisor.dispatch("filter", category="cleanser", query="micellar")
    assert 'data-id="prod-2"' in snapshot.catalog_html
    assert 'data-id="1"' not in snapshot.catalog_html

    snapshot = await advisor.dispatch("toggle", product_id="prod-2")
    assert snapshot.selected_ids == ["prod-2"]
    assert 'class="product-card selected" data-id="prod-2"' in snapshot.catalog_html
    assert "Micellar Water — Garnier" in snapshot.selected_html

    snapshot = await advisor.dispatch("filter", category="moisturizer", query="micellar")
    assert NO_MATCH_PLACEHOLDER in snapshot.catalog_html

    snapshot = await advisor.dispatch("clear")
    assert snapshot.selected_ids == []


def unloadable_advisor(tmp_path, generator):
    store = MemoryStore()
    return AdvisorState(
        catalog=CatalogStore(str(tmp_path / "missing.json")),
        selection=SelectionSet(store),
        conversation=ConversationLog(store),
        generator=generator,
    )


# A catalog failure is the only reply; the selection is not reported as empty
async def test_generate_stops_after_catalog_failure(tmp_path):
    generator = StubGenerator()
    advisor = unloadable_advisor(tmp_path, generator)
    advisor.toggle("1")

    await advisor.generate_routine()

    assert log_of(advisor) == [("assistant", CATALOG_FAILURE_REPLY)]
    assert generator.payloads == []
    assert not advisor.in_flight


async def test_ask_stops_after_catalog_failure(tmp_path):
    generator = StubGenerator()
    advisor = unloadable_advisor(tmp_path, generator)

    await advisor.ask("Is this safe?")

    assert log_of(advisor) == [("user", "Is this safe?"), ("assistant", CATALOG_FAILURE_REPLY)]
    assert generator.payloads == []
