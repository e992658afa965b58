from __future__ import annotations

from .errors import JoinRejected
from .models import Participant, Role


def normalize_team(raw, suffix: str = "조") -> str:
    team = str(raw if raw is not None else "").strip()
    if not team:
        return ""
    if not team.endswith(suffix):
        team = f"{team}{suffix}"
    return team


def normalize_role(raw) -> Role:
    return "host" if str(raw or "").strip().lower() == "host" else "guesser"


def team_slots(count: int, suffix: str = "조") -> list[str]:
    return [f"{i}{suffix}" for i in range(1, count + 1)]


class Roster:
    """Connected participants keyed by connection identity."""

    def __init__(
        self,
        teams: list[str],
        team_suffix: str = "조",
        host_label: str = "출제자",
        guesser_label: str = "참가자",
        nickname_max_len: int = 16,
        one_host_per_team: bool = False,
    ):
        self.teams = list(teams)
        self.team_suffix = team_suffix
        self.host_label = host_label
        self.guesser_label = guesser_label
        self.nickname_max_len = nickname_max_len
        self.one_host_per_team = one_host_per_team
        self._participants: dict[str, Participant] = {}

    def _validate_nickname(self, nickname: str) -> bool:
        if not nickname or len(nickname) > self.nickname_max_len:
            return False
        if "<" in nickname or ">" in nickname:
            return False
        return all(ord(ch) >= 32 for ch in nickname)

    def admit(self, identity: str, nickname, team_raw, role_raw) -> tuple[Participant, list[Participant]]:
        """Register ``identity``. Returns (participant, displaced_entries).

        The room code is checked by the caller; this only validates the roster
        side of the request.
        """
        nickname = str(nickname or "").strip()
        if not self._validate_nickname(nickname):
            raise JoinRejected("invalid_nickname")

        team = normalize_team(team_raw, self.team_suffix)
        if team not in self.teams:
            raise JoinRejected("invalid_team")

        role = normalize_role(role_raw)
        if role == "host" and self.one_host_per_team:
            for other in self.hosts(team):
                if other.identity != identity and other.nickname != nickname:
                    raise JoinRejected("host_taken")

        displaced: list[Participant] = []
        for other in list(self._participants.values()):
            if other.nickname == nickname and other.team == team and other.identity != identity:
                # Same slot from a new connection: the old entry is dropped.
                displaced.append(self._participants.pop(other.identity))

        previous_self = self._participants.pop(identity, None)
        if previous_self is not None and previous_self.team != team:
            displaced.append(previous_self)

        participant = Participant(identity=identity, nickname=nickname, team=team, role=role)
        self._participants[identity] = participant
        return participant, displaced

    def get(self, identity: str) -> Participant | None:
        return self._participants.get(identity)

    def remove(self, identity: str) -> Participant | None:
        return self._participants.pop(identity, None)

    def count(self) -> int:
        return len(self._participants)

    def members(self, team: str) -> list[Participant]:
        return [p for p in self._participants.values() if p.team == team]

    def hosts(self, team: str) -> list[Participant]:
        return [p for p in self.members(team) if p.is_host]

    def teams_with_host(self) -> list[str]:
        return [team for team in self.teams if self.hosts(team)]

    def all(self) -> list[Participant]:
        return list(self._participants.values())

    def label(self, participant: Participant) -> str:
        role_label = self.host_label if participant.is_host else self.guesser_label
        return f"{participant.nickname} ({role_label})"

    def list_by_team(self) -> dict[str, list[str]]:
        team_data: dict[str, list[str]] = {team: [] for team in self.teams}
        for p in self._participants.values():
            if p.team in team_data:
                team_data[p.team].append(self.label(p))
        return team_data
