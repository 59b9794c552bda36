"""Which users are online, and through which socket connections.

A user is online while at least one connection is registered for them. The
first add and the last remove are the transitions that drive `user-online`,
`user-offline` and missed-message replay, so both are decided under the same
lock as the mutation itself.
"""

from __future__ import annotations

import threading


class PresenceRegistry:
    def __init__(self) -> None:
        self._connections: dict[int, set[str]] = {}
        self._generations: dict[int, int] = {}
        self._lock = threading.Lock()

    def add_connection(self, user_id: int, connection_id: str) -> bool:
        """Register `connection_id` for `user_id`.

        Returns True only when this made the user go from offline to online.
        Adding an already registered connection is a no-op returning False.
        """

        with self._lock:
            sids = self._connections.get(user_id)
            if sids is None:
                self._connections[user_id] = {connection_id}
                self._bump(user_id)
                return True
            if connection_id not in sids:
                sids.add(connection_id)
                self._bump(user_id)
            return False

    def _bump(self, user_id: int) -> None:
        self._generations[user_id] = self._generations.get(user_id, 0) + 1

    def remove_connection(self, user_id: int, connection_id: str) -> bool:
        """Deregister `connection_id`.

        Returns True only when it was the user's last connection.
        """

        with self._lock:
            sids = self._connections.get(user_id)
            if not sids or connection_id not in sids:
                return False
            sids.discard(connection_id)
            if sids:
                return False
            del self._connections[user_id]
            return True

    def generation(self, user_id: int) -> int:
        """Number of connections ever registered for `user_id`.

        A changed value means the user connected again in between two reads,
        even if that connection is already gone.
        """

        with self._lock:
            return self._generations.get(user_id, 0)

    def is_online(self, user_id: int) -> bool:
        with self._lock:
            return user_id in self._connections

    def connections(self, user_id: int) -> frozenset[str]:
        with self._lock:
            return frozenset(self._connections.get(user_id, ()))

    def online_user_ids(self) -> list[int]:
        with self._lock:
            return sorted(self._connections)

    def clear(self) -> None:
        with self._lock:
            self._connections.clear()
            self._generations.clear()
