from typing import Any, Dict, List, Optional

import pytest

from routine_advisor.catalog import CatalogStore
from routine_advisor.conversation import ConversationLog
from routine_advisor.models import Product
from routine_advisor.selection import SelectionSet
from routine_advisor.state import AdvisorState
from routine_advisor.storage import MemoryStore


def make_products() -> List[Product]:
    return [
        Product(id=1, name="Foaming Cleanser", brand="CeraVe", category="cleanser", description="Gentle foam wash"),
        Product(id="2", name="Daily Moisturizer", brand="La Roche-Posay", category="moisturizer"),
        Product(name="Micellar Water", brand="Garnier", category="cleanser", description="No-rinse micellar water"),
    ]


class StubGenerator:
    """Records payloads and answers with a fixed reply or error."""

    def __init__(self, reply: str = "Step 1: cleanse.", error: Optional[Exception] = None) -> None:
        self.reply = reply
        self.error = error
        self.payloads: List[Dict[str, Any]] = []

    async def complete(self, payload: Dict[str, Any]) -> str:
        self.payloads.append(payload)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def catalog():
    store = CatalogStore("unused.json")
    store.replace(make_products())
    return store


@pytest.fixture
def generator():
    return StubGenerator()


@pytest.fixture
def advisor(store, catalog, generator):
    return AdvisorState(
        catalog=catalog,
        selection=SelectionSet(store),
        conversation=ConversationLog(store),
        generator=generator,
        system_prompt="SYSTEM",
    )
