from __future__ import annotations

import json
import logging
import random
from pathlib import Path

from .errors import EmptyQuestionPool, QuestionBankError
from .models import Question


logger = logging.getLogger(__name__)


def load_questions(path: str | Path) -> list[Question]:
    """Read the question bank: a JSON array of ``{"text", "answer"}`` objects.

    Fails loudly on anything that would leave the game without questions.
    """
    p = Path(path)
    try:
        raw = json.loads(p.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise QuestionBankError(f"question bank not found: {p}") from exc
    except json.JSONDecodeError as exc:
        raise QuestionBankError(f"question bank is not valid JSON: {p}: {exc}") from exc

    if not isinstance(raw, list):
        raise QuestionBankError(f"question bank must be a JSON array: {p}")

    questions: list[Question] = []
    seen: set[str] = set()
    for idx, item in enumerate(raw):
        if not isinstance(item, dict):
            raise QuestionBankError(f"entry {idx} is not an object")
        text = item.get("text")
        answer = item.get("answer")
        if not isinstance(text, str) or not text.strip() or not isinstance(answer, str) or not answer.strip():
            raise QuestionBankError(f"entry {idx} needs non-empty 'text' and 'answer'")
        if text in seen:
            logger.warning("Skipping duplicate question text %r", text)
            continue
        seen.add(text)
        questions.append(Question(text=text, answer=answer))

    if not questions:
        raise QuestionBankError(f"question bank is empty: {p}")

    logger.info("Loaded %d questions from %s", len(questions), p)
    return questions


class QuestionDispenser:
    """Draws questions without repeats until the whole pool has been used.

    The used-set is shared by every team: when it covers the pool, it is
    cleared for everybody and the draw proceeds from the full pool.
    """

    def __init__(self, pool: list[Question], rng: random.Random | None = None):
        if not pool:
            raise EmptyQuestionPool("cannot dispense from an empty question pool")
        self._pool = tuple(pool)
        self._used: set[str] = set()
        self._rng = rng or random.Random()

    @property
    def used(self) -> frozenset[str]:
        return frozenset(self._used)

    def next(self, team: str) -> Question:
        eligible = [q for q in self._pool if q.text not in self._used]
        if not eligible:
            logger.info("Question pool exhausted; resetting used set (requested by %s)", team)
            self._used.clear()
            eligible = list(self._pool)

        question = self._rng.choice(eligible)
        self._used.add(question.text)
        logger.debug("Dispensed %r to %s", question.text, team)
        return question
