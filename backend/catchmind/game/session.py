from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from functools import partial
from threading import RLock
from typing import Any, Callable, Mapping, Protocol

from .admission import generate_code, verify_code
from .errors import JoinRejected
from .models import Participant, Question, Room, SessionState, now_ms
from .questions import QuestionDispenser
from .roster import Roster, team_slots


logger = logging.getLogger(__name__)


ROOM_GROUP = "main"


def team_group(team: str) -> str:
    return f"team:{team}"


class Broadcaster(Protocol):
    def emit(self, event: str, payload: Any = None, to: str | None = None, skip: str | None = None) -> None: ...

    def join(self, identity: str, group: str) -> None: ...

    def leave(self, identity: str, group: str) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay_sec: float, fn: Callable[[], None]) -> None: ...


@dataclass(frozen=True)
class SessionSettings:
    room_code_length: int = 4
    team_count: int = 6
    team_suffix: str = "조"
    host_label: str = "출제자"
    guesser_label: str = "참가자"
    nickname_max_len: int = 16
    one_host_per_team: bool = False
    min_players: int = 2
    start_delay_sec: float = 3.0
    disconnect_grace_sec: float = 10.0
    reveal_answer_to_guessers: bool = False

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> SessionSettings:
        defaults = cls()
        return cls(
            room_code_length=int(config.get("ROOM_CODE_LENGTH", defaults.room_code_length)),
            team_count=int(config.get("TEAM_COUNT", defaults.team_count)),
            team_suffix=str(config.get("TEAM_SUFFIX", defaults.team_suffix)),
            host_label=str(config.get("HOST_LABEL", defaults.host_label)),
            guesser_label=str(config.get("GUESSER_LABEL", defaults.guesser_label)),
            nickname_max_len=int(config.get("NICKNAME_MAX_LEN", defaults.nickname_max_len)),
            one_host_per_team=bool(config.get("ONE_HOST_PER_TEAM", defaults.one_host_per_team)),
            min_players=int(config.get("MIN_PLAYERS", defaults.min_players)),
            start_delay_sec=float(config.get("START_DELAY_SEC", defaults.start_delay_sec)),
            disconnect_grace_sec=float(config.get("DISCONNECT_GRACE_SEC", defaults.disconnect_grace_sec)),
            reveal_answer_to_guessers=bool(
                config.get("REVEAL_ANSWER_TO_GUESSERS", defaults.reveal_answer_to_guessers)
            ),
        )


class SessionCoordinator:
    """Owns the single room's state and performs every mutation on it.

    All public methods take the coordinator lock, so admission, dispensing,
    judging and phase changes each run to completion before the next event
    (or deferred callback) is looked at.
    """

    def __init__(
        self,
        questions: list[Question],
        broadcaster: Broadcaster,
        scheduler: Scheduler,
        settings: SessionSettings | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.settings = settings or SessionSettings()
        self.broadcaster = broadcaster
        self.scheduler = scheduler
        self.dispenser = QuestionDispenser(questions, rng=rng)
        self._clock = clock
        self._lock = RLock()
        self.state = self._new_state(previous_code=None, round_token=0)

    def _new_state(self, previous_code: str | None, round_token: int) -> SessionState:
        s = self.settings
        roster = Roster(
            team_slots(s.team_count, s.team_suffix),
            team_suffix=s.team_suffix,
            host_label=s.host_label,
            guesser_label=s.guesser_label,
            nickname_max_len=s.nickname_max_len,
            one_host_per_team=s.one_host_per_team,
        )
        room = Room(code=generate_code(s.room_code_length, previous=previous_code))
        return SessionState(room=room, roster=roster, round_token=round_token)

    # ---- read-only views ----

    @property
    def code(self) -> str:
        return self.state.room.code

    @property
    def phase(self) -> str:
        return self.state.room.phase

    @property
    def start_at_ms(self) -> int | None:
        return self.state.room.start_at_ms

    def player_list(self) -> dict[str, list[str]]:
        with self._lock:
            return self.state.roster.list_by_team()

    def current_question(self, team: str) -> Question | None:
        with self._lock:
            return self.state.current.get(team)

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "phase": self.state.room.phase,
                "players": self.state.roster.count(),
            }

    # ---- admission ----

    def get_code(self, identity: str) -> str:
        code = self.code
        self.broadcaster.emit("code", code, to=identity)
        return code

    def verify_code(self, identity: str, code) -> bool:
        ok = verify_code(self.code, code)
        self.broadcaster.emit("codeResult", ok, to=identity)
        return ok

    def admin_join(self, identity: str) -> None:
        with self._lock:
            self.broadcaster.join(identity, ROOM_GROUP)
            self.broadcaster.emit("playerList", self.state.roster.list_by_team(), to=identity)
        logger.info("Admin console %s subscribed", identity)

    def join(self, identity: str, nickname, code, team, role) -> Participant:
        """Admit ``identity`` to the room. Raises JoinRejected on failure."""
        with self._lock:
            state = self.state
            if not verify_code(state.room.code, code):
                logger.info("Join rejected for %r: bad room code", nickname)
                raise JoinRejected("invalid_code")

            participant, displaced = state.roster.admit(identity, nickname, team, role)
            for old in displaced:
                self.broadcaster.leave(old.identity, team_group(old.team))
                if old.identity != identity:
                    logger.info("%s took over slot %s/%s from %s", identity, old.team, old.nickname, old.identity)

            self.broadcaster.join(identity, ROOM_GROUP)
            self.broadcaster.join(identity, team_group(participant.team))
            logger.info("Joined: %s team=%s role=%s", participant.nickname, participant.team, participant.role)

            self.broadcaster.emit("playerList", state.roster.list_by_team(), to=ROOM_GROUP)
            self.broadcaster.emit(
                "joinSuccess",
                {"nickname": participant.nickname, "team": participant.team, "role": participant.role},
                to=identity,
            )

            # Late joiners get the running round's clock and their team's question.
            if state.room.phase != "idle" and state.room.start_at_ms is not None:
                self.broadcaster.emit("gameStarted", {"startAt": state.room.start_at_ms}, to=identity)
            if state.room.phase == "active":
                question = state.current.get(participant.team)
                if question is not None:
                    self._send_question(participant, question)
                elif participant.is_host:
                    # Team had no host at activation; its round starts now.
                    logger.info("Late host %s opens the round for %s", participant.nickname, participant.team)
                    self._dispense(participant.team)

            return participant

    def request_player_list(self, identity: str) -> None:
        self.broadcaster.emit("playerList", self.player_list(), to=identity)

    # ---- round ----

    def start_game(self, identity: str | None = None) -> bool:
        with self._lock:
            state = self.state
            if state.room.phase != "idle":
                logger.debug("startGame from %s ignored: phase is %s", identity, state.room.phase)
                return False
            if state.roster.count() < self.settings.min_players:
                logger.debug(
                    "startGame from %s ignored: %d/%d players",
                    identity,
                    state.roster.count(),
                    self.settings.min_players,
                )
                return False

            state.round_token += 1
            state.room.phase = "countdown"
            state.room.start_at_ms = self._clock() + int(self.settings.start_delay_sec * 1000)
            token = state.round_token

            self.broadcaster.emit("gameStarted", {"startAt": state.room.start_at_ms}, to=ROOM_GROUP)
            logger.info("Countdown started, startAt=%s token=%s", state.room.start_at_ms, token)

        self.scheduler.call_later(self.settings.start_delay_sec, partial(self._activate, token))
        return True

    def _activate(self, token: int) -> None:
        with self._lock:
            state = self.state
            if state.round_token != token or state.room.phase != "countdown":
                logger.debug("Stale activation token=%s ignored", token)
                return

            state.room.phase = "active"
            teams = state.roster.teams_with_host()
            logger.info("Round active, dispensing to %s", teams)
            for team in teams:
                self._dispense(team)

    def request_start_status(self, identity: str) -> None:
        with self._lock:
            state = self.state
            if state.room.phase == "idle" or state.room.start_at_ms is None:
                return
            self.broadcaster.emit("gameStarted", {"startAt": state.room.start_at_ms}, to=identity)

            participant = state.roster.get(identity)
            if state.room.phase == "active" and participant is not None:
                question = state.current.get(participant.team)
                if question is not None:
                    self._send_question(participant, question)

    def game_time_over(self, identity: str) -> None:
        with self._lock:
            state = self.state
            participant = state.roster.get(identity)
            if participant is None or not participant.is_host:
                return
            if state.room.phase != "active":
                return

            state.room.phase = "resolved"
            results = {
                team: [{"nickname": nickname, "score": score} for nickname, score in board]
                for team, board in state.scores.finalize(state.roster.teams).items()
            }
            logger.info("Round resolved by %s (%s)", participant.nickname, participant.team)
            self.broadcaster.emit("finalResult", results, to=ROOM_GROUP)

            self._reset()
            self.broadcaster.emit("code", self.state.room.code, to=ROOM_GROUP)

    def reset_game(self, identity: str | None = None) -> None:
        with self._lock:
            self._reset()
            logger.info("Game reset by %s", identity)
            self.broadcaster.emit("gameReset", to=ROOM_GROUP)
            self.broadcaster.emit("code", self.state.room.code, to=ROOM_GROUP)

    def _reset(self) -> None:
        old = self.state
        for p in old.roster.all():
            self.broadcaster.leave(p.identity, team_group(p.team))
        self.state = self._new_state(previous_code=old.room.code, round_token=old.round_token + 1)

    # ---- questions & answers ----

    def _dispense(self, team: str) -> Question:
        question = self.dispenser.next(team)
        self.state.current[team] = question
        for member in self.state.roster.members(team):
            self._send_question(member, question)
        return question

    def _send_question(self, participant: Participant, question: Question) -> None:
        payload = {"team": participant.team, "text": question.text}
        if participant.is_host or self.settings.reveal_answer_to_guessers:
            payload["answer"] = question.answer
        self.broadcaster.emit("sendQuestion", payload, to=participant.identity)

    def submit_answer(self, identity: str, guess) -> bool | None:
        """Judge a guess. Returns None when the submission is ignored."""
        with self._lock:
            state = self.state
            participant = state.roster.get(identity)
            if participant is None or state.room.phase != "active":
                return None
            if not isinstance(guess, str):
                return None

            team = participant.team
            question = state.current.get(team)
            if question is None or not question.answer:
                return None

            is_correct = guess == question.answer
            if is_correct:
                # Closing the window before anything else is what keeps it one score per question.
                state.current[team] = None
                score = state.scores.record(team, participant.nickname, 1)
                logger.info("%s (%s) answered %r correctly, score=%d", participant.nickname, team, guess, score)
            else:
                score = state.scores.score_of(team, participant.nickname)

            self.broadcaster.emit(
                "answerResult",
                {"isCorrect": is_correct, "nickname": participant.nickname, "score": score, "team": team},
                to=team_group(team),
            )

            if is_correct:
                self._dispense(team)
            return is_correct

    # ---- canvas relay ----

    def relay(self, identity: str, event: str, payload) -> bool:
        with self._lock:
            participant = self.state.roster.get(identity)
            if participant is None or not participant.is_host:
                return False
            team = participant.team
        self.broadcaster.emit(event, payload, to=team_group(team), skip=identity)
        return True

    # ---- connections ----

    def disconnect(self, identity: str) -> None:
        with self._lock:
            participant = self.state.roster.get(identity)
            if participant is None:
                return
            grace = self.settings.disconnect_grace_sec
            if grace < 0:
                logger.info("%s disconnected; eviction disabled", participant.nickname)
                return
            logger.info("%s disconnected; evicting in %ss unless replaced", participant.nickname, grace)

        if grace == 0:
            self._evict(identity)
        else:
            self.scheduler.call_later(grace, partial(self._evict, identity))

    def _evict(self, identity: str) -> None:
        with self._lock:
            # A re-join from a new connection already removed this identity.
            participant = self.state.roster.remove(identity)
            if participant is None:
                return
            logger.info("Evicted %s (%s)", participant.nickname, participant.team)
            self.broadcaster.emit("playerList", self.state.roster.list_by_team(), to=ROOM_GROUP)
