from typing import Dict, List, Optional

from ballpark.models import Player


class SessionRegistry:
    """Connection id -> player record, in join order.

    Not thread-safe on its own; the state machine guards every call.
    """

    def __init__(self):
        self._players: Dict[str, Player] = {}

    def add(self, sid: str, name: str) -> Player:
        player = Player(sid=sid, name=name)
        self._players[sid] = player
        return player

    def remove(self, sid: str) -> Optional[Player]:
        return self._players.pop(sid, None)

    def get(self, sid: str) -> Optional[Player]:
        return self._players.get(sid)

    def players(self) -> List[Player]:
        return list(self._players.values())

    def __contains__(self, sid: str) -> bool:
        return sid in self._players

    def __len__(self) -> int:
        return len(self._players)
