from typing import Dict, List, Optional

from staffhub.models.enums import PresenceStatus


class PresenceRegistry:
    """
    Who is connected and how they describe themselves (online / away / busy).

    Advisory only: message delivery never consults it. A user is registered for
    as long as at least one of their sockets is open, so registrations are
    counted per user.
    """

    def __init__(self):
        self._statuses: Dict[int, PresenceStatus] = {}
        self._connections: Dict[int, int] = {}

    def register(self, user_id: int, status: PresenceStatus = PresenceStatus.ONLINE) -> bool:
        """Returns True when this is the user's first live registration."""
        first = self._connections.get(user_id, 0) == 0
        self._connections[user_id] = self._connections.get(user_id, 0) + 1
        if first:
            self._statuses[user_id] = status
        return first

    def unregister(self, user_id: int) -> bool:
        """Returns True when the user's last registration went away."""
        remaining = self._connections.get(user_id, 0) - 1
        if remaining > 0:
            self._connections[user_id] = remaining
            return False
        self._connections.pop(user_id, None)
        self._statuses.pop(user_id, None)
        return True

    def set_status(self, user_id: int, status: PresenceStatus) -> bool:
        if user_id not in self._statuses or status == PresenceStatus.OFFLINE:
            return False
        self._statuses[user_id] = status
        return True

    def get_status(self, user_id: int) -> PresenceStatus:
        return self._statuses.get(user_id, PresenceStatus.OFFLINE)

    def lookup(self, user_id: int) -> Optional[PresenceStatus]:
        return self._statuses.get(user_id)

    def is_online(self, user_id: int) -> bool:
        return user_id in self._statuses

    def snapshot(self) -> List[dict]:
        return [
            {"user_id": user_id, "status": status.value}
            for user_id, status in sorted(self._statuses.items())
        ]

    def clear(self):
        self._statuses.clear()
        self._connections.clear()
