"""
Team roster: an arena of member records keyed by stable id.

Membership only grows; departures move an id from the active index to the
departed index so the full hiring history stays available.
"""
from dataclasses import dataclass, field
from typing import Dict, Optional, Set


ROLES = ("engineer", "designer", "sales", "support", "ops")


@dataclass
class TeamMember:
    """One person ever hired"""
    member_id: int
    role: str
    hired_week: int
    departed_week: Optional[int] = None
    departure_reason: str = ""


@dataclass
class TeamRoster:
    """Hire/departure ledger owned by a single game"""
    members: Dict[int, TeamMember] = field(default_factory=dict)
    active: Set[int] = field(default_factory=set)
    departed: Set[int] = field(default_factory=set)
    next_id: int = 1

    def hire(self, week: int, role: Optional[str] = None) -> TeamMember:
        """Add a new member and return the record"""
        member_id = self.next_id
        self.next_id += 1
        if role is None:
            role = ROLES[(member_id - 1) % len(ROLES)]
        member = TeamMember(member_id=member_id, role=role, hired_week=week)
        self.members[member_id] = member
        self.active.add(member_id)
        return member

    def depart(self, member_id: int, week: int, reason: str = "") -> TeamMember:
        """Move an active member to the departed index"""
        if member_id not in self.active:
            raise KeyError(f"Member {member_id} is not active")
        member = self.members[member_id]
        member.departed_week = week
        member.departure_reason = reason
        self.active.discard(member_id)
        self.departed.add(member_id)
        return member

    def newest_active(self) -> Optional[int]:
        """Id of the most recently hired active member"""
        return max(self.active) if self.active else None

    @property
    def headcount(self) -> int:
        return len(self.active)

    @property
    def turnover(self) -> float:
        """Share of everyone ever hired who has left"""
        total = len(self.members)
        return len(self.departed) / total if total else 0.0
