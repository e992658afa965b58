from __future__ import annotations


class JoinRejected(Exception):
    """Admission failed. ``reason`` is sent back to the requester as ``joinError``."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class QuestionBankError(Exception):
    """The question bank could not be loaded or is empty."""


class EmptyQuestionPool(QuestionBankError):
    pass
