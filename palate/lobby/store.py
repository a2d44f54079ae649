from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator

from ..errors import ConflictError, NotFoundError
from .models import Lobby, utcnow

logger = logging.getLogger(__name__)


class CodeInUseError(ConflictError):
    code = "CODE_IN_USE"
    default_message = "Lobby code is already in use"


class LobbyStore:
    """In-memory lobby documents with one lock per lobby.

    Readers get deep copies. Writers go through :meth:`transaction`, which
    hands out a draft copy under the lobby's lock and only swaps it in when
    the block finishes without raising.
    """

    _lobbies: dict[str, Lobby]
    _ids_by_code: dict[str, str]
    _locks: dict[str, threading.Lock]
    _registry_lock: threading.Lock

    def __init__(self) -> None:
        self._lobbies = {}
        self._ids_by_code = {}
        self._locks = {}
        self._registry_lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._lobbies)

    def code_in_use(self, code: str) -> bool:
        return code in self._ids_by_code

    def get(self, lobby_id: str) -> Lobby:
        lobby = self._lobbies.get(lobby_id)
        if lobby is None:
            raise NotFoundError()
        return lobby.model_copy(deep=True)

    def get_by_code(self, code: str) -> Lobby:
        lobby_id = self._ids_by_code.get(code)
        if lobby_id is None:
            raise NotFoundError("Lobby not found. Please check the code.")
        return self.get(lobby_id)

    def insert(self, lobby: Lobby) -> Lobby:
        with self._registry_lock:
            if lobby.code in self._ids_by_code:
                raise CodeInUseError()
            self._lobbies[lobby.id] = lobby.model_copy(deep=True)
            self._ids_by_code[lobby.code] = lobby.id
            self._locks[lobby.id] = threading.Lock()
        return lobby

    def _lock_for(self, lobby_id: str) -> threading.Lock:
        with self._registry_lock:
            lock = self._locks.get(lobby_id)
        if lock is None:
            raise NotFoundError()
        return lock

    @contextmanager
    def transaction(self, lobby_id: str) -> Iterator[Lobby]:
        """Read-modify-write a lobby atomically.

        Raising inside the block discards the draft, so a failed operation
        leaves the stored lobby untouched.
        """
        with self._lock_for(lobby_id):
            current = self._lobbies.get(lobby_id)
            if current is None:
                # Deleted while we were waiting for the lock
                raise NotFoundError()
            draft = current.model_copy(deep=True)
            yield draft
            draft.version = current.version + 1
            draft.updated_at = utcnow()
            self._lobbies[lobby_id] = draft.model_copy(deep=True)

    def delete_if_empty(self, lobby_id: str) -> bool:
        """Drop the lobby if nobody is left in it."""
        try:
            lock = self._lock_for(lobby_id)
        except NotFoundError:
            return False
        with lock:
            lobby = self._lobbies.get(lobby_id)
            if lobby is None or lobby.participants:
                return False
            self._remove(lobby)
        return True

    def purge_older_than(self, cutoff: datetime) -> int:
        """Remove lobbies created before *cutoff* and release their codes."""
        with self._registry_lock:
            expired = [lobby for lobby in self._lobbies.values() if lobby.created_at < cutoff]
        for lobby in expired:
            lock = self._locks.get(lobby.id)
            if lock is None:
                continue
            with lock:
                if lobby.id in self._lobbies:
                    self._remove(lobby)
        if expired:
            logger.info("Purged %d expired lobbies", len(expired))
        return len(expired)

    def _remove(self, lobby: Lobby) -> None:
        with self._registry_lock:
            self._lobbies.pop(lobby.id, None)
            if self._ids_by_code.get(lobby.code) == lobby.id:
                del self._ids_by_code[lobby.code]
            self._locks.pop(lobby.id, None)

    def clear(self) -> None:
        with self._registry_lock:
            self._lobbies.clear()
            self._ids_by_code.clear()
            self._locks.clear()
