from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

from .scores import ScoreLedger

if TYPE_CHECKING:
    from .roster import Roster


Phase = Literal["idle", "countdown", "active", "resolved"]
Role = Literal["host", "guesser"]


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(frozen=True)
class Question:
    text: str
    answer: str


@dataclass
class Participant:
    identity: str
    nickname: str
    team: str
    role: Role = "guesser"

    @property
    def is_host(self) -> bool:
        return self.role == "host"


@dataclass
class Room:
    code: str
    phase: Phase = "idle"
    start_at_ms: int | None = None


@dataclass
class SessionState:
    room: Room
    roster: Roster
    current: dict[str, Question | None] = field(default_factory=dict)
    scores: ScoreLedger = field(default_factory=ScoreLedger)
    # Bumped on every countdown/reset so deferred callbacks can detect staleness.
    round_token: int = 0

    def __post_init__(self) -> None:
        for team in self.roster.teams:
            self.current.setdefault(team, None)
