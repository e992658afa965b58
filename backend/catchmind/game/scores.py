from __future__ import annotations

from typing import Iterable


class ScoreLedger:
    """Per-team, per-nickname point totals.

    Entries are created lazily on the first scoring event and only ever grow.
    Dict insertion order doubles as the tie-break for equal scores.
    """

    def __init__(self) -> None:
        self._scores: dict[str, dict[str, int]] = {}

    def record(self, team: str, nickname: str, delta: int = 1) -> int:
        if delta < 0:
            raise ValueError("score delta must be non-negative")
        team_scores = self._scores.setdefault(team, {})
        team_scores[nickname] = team_scores.get(nickname, 0) + delta
        return team_scores[nickname]

    def score_of(self, team: str, nickname: str) -> int:
        return self._scores.get(team, {}).get(nickname, 0)

    def leaderboard(self, team: str) -> list[tuple[str, int]]:
        entries = list(self._scores.get(team, {}).items())
        # sorted() is stable, so equal scores keep insertion order.
        return sorted(entries, key=lambda item: item[1], reverse=True)

    def finalize(self, teams: Iterable[str]) -> dict[str, list[tuple[str, int]]]:
        return {team: self.leaderboard(team) for team in teams}
