from __future__ import annotations

import json
import logging
from typing import Dict, List

from pydantic import ValidationError

from .models import ConversationMessage
from .storage import KeyValueStore

logger = logging.getLogger("routine_advisor.conversation")

HISTORY_KEY = "routineChatHistory"

ROUTINE_PENDING = "Generating routine…"
FOLLOWUP_PENDING = "Thinking…"


class ConversationLog:
    """Ordered, persisted chat history with provisional placeholder replacement."""

    def __init__(self, store: KeyValueStore, key: str = HISTORY_KEY) -> None:
        """Purpose: Initialize the log and hydrate messages from the store.
        Inputs/Outputs: Inputs are a KeyValueStore and the slot key; no return value.
        Side Effects / State: Loads messages into an in-memory list.
        Dependencies: Calls _load; relies on the ConversationMessage model.
        Failure Modes: Corrupt stored history leaves an empty log.
        If Removed: The chat thread is lost on every reload.
        Testing Notes: Store a valid history and a corrupt one; both must load.
        """
        # Keep the store handle and restore the previous thread.
        self._store = store
        self._key = key
        self._messages: List[ConversationMessage] = []
        self._load()

    def _load(self) -> None:
        """Purpose: Decode the persisted message list.
        Inputs/Outputs: Reads the store slot; no return value.
        Side Effects / State: Replaces self._messages.
        Dependencies: json.loads and ConversationMessage validation.
        Failure Modes: JSONDecodeError, a non-list value, or any invalid entry resets
            the log to empty.
        If Removed: History never survives a restart.
        Testing Notes: Include an entry with an unknown role and expect an empty log.
        """
        # Parse all-or-nothing so a partially valid history is never shown.
        raw = self._store.get(self._key)
        if not raw:
            return
        try:
            data = json.loads(raw)
            if not isinstance(data, list):
                raise ValueError("history is not a list")
            self._messages = [ConversationMessage(**entry) for entry in data]
        except (json.JSONDecodeError, ValueError, TypeError, ValidationError):
            logger.warning("conversation key=%s status=corrupt action=reset", self._key)
            self._messages = []

    def _persist(self) -> None:
        payload = [message.model_dump() for message in self._messages]
        self._store.set(self._key, json.dumps(payload, ensure_ascii=False))

    def append(self, role: str, text: str) -> ConversationMessage:
        message = ConversationMessage(role=role, text=text)
        self._messages.append(message)
        self._persist()
        return message

    def replace_pending(self, sentinel: str, role: str, text: str) -> ConversationMessage:
        """Drop the trailing placeholder if it is exactly ``sentinel``, then append."""
        message = ConversationMessage(role=role, text=text)
        if self._messages and self._messages[-1].text == sentinel:
            self._messages.pop()
        self._messages.append(message)
        self._persist()
        return message

    def to_messages(self) -> List[Dict[str, str]]:
        return [{"role": message.role, "content": message.text} for message in self._messages]

    def all(self) -> List[ConversationMessage]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)
