"""
Rotating, write-through conversation memory.

The store owns the conversation history and the user profile. Every append is
persisted before control returns to the caller. Persistence failures are
logged and swallowed: losing durability is acceptable, failing the request
being served is not.
"""

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import ValidationError as ModelValidationError

from meseca.models.conversation import ConversationEntry, PersistedMemory, Role
from meseca.utils.error_handler import PersistenceError

logger = logging.getLogger(__name__)

DEFAULT_MAX_ENTRIES = 200
DEFAULT_CONTEXT_ENTRIES = 20


class MemoryBackend(ABC):
    """Durable storage for the persisted memory document."""

    @abstractmethod
    def load(self) -> Optional[Dict[str, Any]]:
        """Return the stored document, or None when nothing is stored."""

    @abstractmethod
    def save(self, document: Dict[str, Any]) -> None:
        """Replace the stored document."""


class JsonFileMemoryBackend(MemoryBackend):
    """Stores the memory document as pretty-printed JSON on local disk."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            return None
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            raise PersistenceError(
                f"Could not read {self.path}", details={"error": str(e)}
            ) from e

    def save(self, document: Dict[str, Any]) -> None:
        directory = self.path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=directory, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as e:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise PersistenceError(
                f"Could not write {self.path}", details={"error": str(e)}
            ) from e


class ConversationStore:
    """
    Bounded conversation history with write-through persistence.

    History rotation is FIFO: once ``max_entries`` is reached, each append
    evicts the oldest entry.
    """

    def __init__(
        self,
        backend: MemoryBackend,
        max_entries: int = DEFAULT_MAX_ENTRIES
    ):
        """
        Initialize the store. Call load() before serving requests.

        Args:
            backend: Durable storage for the memory document
            max_entries: History cap
        """
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.backend = backend
        self.max_entries = max_entries
        self._memory = PersistedMemory()

    @property
    def memory(self) -> PersistedMemory:
        return self._memory

    @property
    def history(self) -> Tuple[ConversationEntry, ...]:
        return tuple(self._memory.conversation_history)

    @property
    def user_profile(self) -> Dict[str, Any]:
        return self._memory.user_profile

    def load(self) -> PersistedMemory:
        """
        Load memory from the backend, falling back to an empty memory.

        Never raises: a missing document starts fresh, and an unreadable or
        malformed one is logged and replaced by the empty default.
        """
        try:
            document = self.backend.load()
        except Exception as e:
            logger.warning(f"Could not load memory, starting with empty history: {e}")
            self._memory = PersistedMemory()
            return self._memory

        if document is None:
            logger.info("No stored memory found, starting with empty history")
            self._memory = PersistedMemory()
            return self._memory

        try:
            memory = PersistedMemory.model_validate(document)
        except ModelValidationError as e:
            logger.warning(f"Stored memory is malformed, starting with empty history: {e}")
            self._memory = PersistedMemory()
            return self._memory

        overflow = len(memory.conversation_history) - self.max_entries
        if overflow > 0:
            del memory.conversation_history[:overflow]
            logger.info(f"Trimmed {overflow} stored entries to respect the history cap")

        self._memory = memory
        logger.info(f"Loaded memory with {len(memory.conversation_history)} entries")
        return self._memory

    def append_user(self, message: str) -> ConversationEntry:
        return self._append("user", message)

    def append_assistant(self, text: str) -> ConversationEntry:
        return self._append("assistant", text)

    def _append(self, role: Role, content: str) -> ConversationEntry:
        entry = ConversationEntry(role=role, content=content)
        history = self._memory.conversation_history
        history.append(entry)
        overflow = len(history) - self.max_entries
        if overflow > 0:
            del history[:overflow]
        self.persist()
        return entry

    def persist(self) -> bool:
        """
        Write the full memory document.

        Returns:
            True if the write succeeded, False if it failed and was logged
        """
        try:
            self.backend.save(self._memory.to_document())
            return True
        except Exception as e:
            logger.warning(f"Failed to save memory: {e}")
            return False

    def recent_context(self, n: int = DEFAULT_CONTEXT_ENTRIES) -> List[ConversationEntry]:
        """Last ``n`` entries in chronological order, as a new list."""
        if n <= 0:
            return []
        return list(self._memory.conversation_history[-n:])
