from __future__ import annotations

import threading
from typing import Dict, Hashable

from insurance_bot.models import ConversationState


class ConversationStore:
    """In-memory map of conversation id to its latest state snapshot.

    Entries live for the lifetime of the process; nothing is evicted.
    """

    def __init__(self) -> None:
        self._chats: Dict[Hashable, ConversationState] = {}
        self._lock = threading.Lock()

    def get(self, chat_id: Hashable) -> ConversationState:
        with self._lock:
            return self._chats.setdefault(chat_id, ConversationState())

    def save(self, chat_id: Hashable, state: ConversationState) -> None:
        with self._lock:
            self._chats[chat_id] = state

    def __contains__(self, chat_id: object) -> bool:
        with self._lock:
            return chat_id in self._chats

    def __len__(self) -> int:
        with self._lock:
            return len(self._chats)
