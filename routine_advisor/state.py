from __future__ import annotations

"""Application state container and the action dispatch table.

AdvisorState owns the catalog, selection, conversation, and current filter. UI
events arrive as named actions through ``dispatch``; each action mutates state and
the caller receives a freshly rendered ViewSnapshot.
"""

import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from .catalog import CatalogStore
from .config import Settings
from .context import build_followup_payload, build_routine_payload, routine_request_text
from .conversation import FOLLOWUP_PENDING, ROUTINE_PENDING, ConversationLog
from .errors import FetchError, GenerationInProgress, RemoteRejection
from .filters import apply_filters
from .generation import Generator, build_generator
from .models import FilterCriteria, Product, ViewSnapshot
from .prompt_loader import DEFAULT_SYSTEM_PROMPT, load_system_prompt
from .selection import SelectionSet
from .storage import JsonFileStore, KeyValueStore
from .views import render_catalog, render_chat, render_selected

logger = logging.getLogger("routine_advisor.state")

EMPTY_SELECTION_REPLY = "Please select at least one product before generating a routine."
ROUTINE_FAILURE_REPLY = "Sorry — there was an error generating your routine."
FOLLOWUP_FAILURE_REPLY = "Sorry — error responding to your question."
CATALOG_FAILURE_REPLY = "Sorry — the product catalog could not be loaded."

Handler = Callable[..., Union[None, Awaitable[None]]]


class UnknownAction(ValueError):
    """Raised by dispatch for an action name with no handler."""


class AdvisorState:
    """Single owner of all widget state."""

    def __init__(
        self,
        catalog: CatalogStore,
        selection: SelectionSet,
        conversation: ConversationLog,
        generator: Generator,
        system_prompt: str = DEFAULT_SYSTEM_PROMPT,
    ) -> None:
        self.catalog = catalog
        self.selection = selection
        self.conversation = conversation
        self.generator = generator
        self.system_prompt = system_prompt
        self.criteria: Optional[FilterCriteria] = None
        self._in_flight = False
        self._handlers: Dict[str, Handler] = {
            "filter": self.apply_filters,
            "toggle": self.toggle,
            "remove": self.remove,
            "clear": self.clear,
            "generate": self.generate_routine,
            "ask": self.ask,
        }

    @classmethod
    def from_settings(cls, settings: Settings, store: Optional[KeyValueStore] = None) -> "AdvisorState":
        """Wire stores and the generation backend from configuration."""
        store = store if store is not None else JsonFileStore(settings.state_path)
        return cls(
            catalog=CatalogStore(settings.catalog_source),
            selection=SelectionSet(store),
            conversation=ConversationLog(store),
            generator=build_generator(settings),
            system_prompt=load_system_prompt(settings.prompts_dir),
        )

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    async def _ensure_catalog(self) -> bool:
        # Catalog failures end up in the chat log like any other failure.
        try:
            await self.catalog.all()
        except FetchError as exc:
            logger.warning("catalog load failed error=%s", exc)
            self.conversation.append("assistant", CATALOG_FAILURE_REPLY)
            return False
        return True

    async def apply_filters(self, category: str = "", query: str = "") -> None:
        self.criteria = FilterCriteria(category=category or "", query=query or "")
        await self._ensure_catalog()

    def visible(self) -> Optional[List[Product]]:
        """Filtered products, or None while nothing can be shown yet."""
        if self.criteria is None or self.catalog.products is None:
            return None
        return apply_filters(self.catalog.products, self.criteria)

    def toggle(self, product_id: str) -> None:
        self.selection.toggle(product_id)

    def remove(self, product_id: str) -> None:
        self.selection.remove(product_id)

    def clear(self) -> None:
        self.selection.clear()

    async def _complete(self, payload: Dict[str, Any], failure_reply: str) -> str:
        """Run one backend call and turn every failure into reply text."""
        try:
            return await self.generator.complete(payload)
        except RemoteRejection as exc:
            logger.warning("generation rejected status=%s detail=%s", exc.status, exc.detail)
            return f"Error from worker: {exc.detail}"
        except FetchError as exc:
            logger.warning("generation failed error=%s", exc)
            return failure_reply
        except Exception:
            logger.exception("generation crashed")
            return failure_reply

    async def generate_routine(self) -> None:
        """Purpose: Request a routine for the current selection.
        Inputs/Outputs: No inputs; appends messages to the conversation.
        Side Effects / State: Persists the user request, a placeholder, and the
            final reply (or error) which replaces the placeholder.
        Dependencies: SelectionSet.resolve, build_routine_payload, the generator.
        Failure Modes: All backend failures become assistant messages.
        If Removed: The routine button does nothing.
        Testing Notes: Use a stub generator and check the final log contents.
        """
        # Refuse overlapping requests so placeholders never interleave.
        if self._in_flight:
            raise GenerationInProgress("a reply is already pending")
        self._in_flight = True
        try:
            if not await self._ensure_catalog():
                return
            products = self.selection.resolve(self.catalog)
            if not products:
                self.conversation.append("assistant", EMPTY_SELECTION_REPLY)
                return
            self.conversation.append("user", routine_request_text(products))
            payload = build_routine_payload(products, self.system_prompt)
            self.conversation.append("assistant", ROUTINE_PENDING)
            logger.info("action=generate products=%d", len(products))
            reply = await self._complete(payload, ROUTINE_FAILURE_REPLY)
            self.conversation.replace_pending(ROUTINE_PENDING, "assistant", reply)
        finally:
            self._in_flight = False

    async def ask(self, question: str) -> None:
        """Purpose: Answer a follow-up question with routine and product context.
        Inputs/Outputs: Input is the raw question; appends messages to the conversation.
        Side Effects / State: Persists the question, a placeholder, and the reply.
        Dependencies: build_followup_payload, ConversationLog, the generator.
        Failure Modes: Blank questions are ignored; backend failures become messages.
        If Removed: The chat form does nothing.
        Testing Notes: Verify the payload carries the prior conversation in order.
        """
        # Ignore blank input, then follow the same placeholder flow as routines.
        text = (question or "").strip()
        if not text:
            return
        if self._in_flight:
            raise GenerationInProgress("a reply is already pending")
        self._in_flight = True
        try:
            self.conversation.append("user", text)
            # The catalog failure reply answers the question.
            if not await self._ensure_catalog():
                return
            products = self.selection.resolve(self.catalog)
            payload = build_followup_payload(self.conversation, products, text, self.system_prompt)
            self.conversation.append("assistant", FOLLOWUP_PENDING)
            logger.info("action=ask products=%d history=%d", len(products), len(self.conversation))
            reply = await self._complete(payload, FOLLOWUP_FAILURE_REPLY)
            self.conversation.replace_pending(FOLLOWUP_PENDING, "assistant", reply)
        finally:
            self._in_flight = False

    async def dispatch(self, action: str, **params: Any) -> ViewSnapshot:
        """Route a UI action to its handler, then re-render."""
        handler = self._handlers.get(action)
        if handler is None:
            raise UnknownAction(action)
        logger.debug("dispatch action=%s params=%s", action, params)
        result = handler(**params)
        if inspect.isawaitable(result):
            await result
        return self.snapshot()

    def snapshot(self) -> ViewSnapshot:
        members = self.selection.members()
        messages = self.conversation.all()
        return ViewSnapshot(
            catalog_html=render_catalog(self.visible(), self.criteria, members, self.catalog.product_id),
            selected_html=render_selected(self.selection.labels(self.catalog)),
            chat_html=render_chat(messages),
            selected_ids=sorted(members),
            messages=messages,
            categories=self.catalog.categories(),
        )
