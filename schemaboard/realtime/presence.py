from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from schemaboard.domain.entities import MemberEntity


@dataclass
class RoomMember:
    user_name: str
    connection_id: str

    def to_dict(self) -> MemberEntity:
        return {"userName": self.user_name, "connectionId": self.connection_id}


class PresenceTracker:
    """Who is connected to which project room.

    Rooms are created on first join and kept (possibly empty) afterwards.
    A connection appears at most once per room.
    """

    def __init__(self) -> None:
        self._rooms: Dict[str, List[RoomMember]] = {}

    def join(self, project_id: str, user_name: str, connection_id: str) -> List[MemberEntity]:
        members = self._rooms.setdefault(project_id, [])
        for member in members:
            if member.connection_id == connection_id:
                member.user_name = user_name
                break
        else:
            members.append(RoomMember(user_name, connection_id))
        return self.members(project_id)

    def leave(self, project_id: str, connection_id: str) -> Optional[List[MemberEntity]]:
        """Remove one connection from one room; None if it was not a member."""
        members = self._rooms.get(project_id)
        if not members:
            return None
        remaining = [m for m in members if m.connection_id != connection_id]
        if len(remaining) == len(members):
            return None
        self._rooms[project_id] = remaining
        return self.members(project_id)

    def remove_connection(self, connection_id: str) -> Dict[str, List[MemberEntity]]:
        """Drop a connection from every room; returns the new lists of the rooms it left."""
        affected: Dict[str, List[MemberEntity]] = {}
        for project_id in list(self._rooms):
            members = self.leave(project_id, connection_id)
            if members is not None:
                affected[project_id] = members
        return affected

    def members(self, project_id: str) -> List[MemberEntity]:
        return [m.to_dict() for m in self._rooms.get(project_id, [])]

    def connection_ids(self, project_id: str) -> List[str]:
        return [m.connection_id for m in self._rooms.get(project_id, [])]

    def rooms_of(self, connection_id: str) -> List[str]:
        return [
            project_id
            for project_id, members in self._rooms.items()
            if any(m.connection_id == connection_id for m in members)
        ]

    def has_room(self, project_id: str) -> bool:
        return project_id in self._rooms

    def room_ids(self) -> List[str]:
        return list(self._rooms)
