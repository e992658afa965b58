from __future__ import annotations

import secrets
import string


CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_code(length: int = 4, previous: str | None = None) -> str:
    """Short, typeable room code. Never equal to ``previous``."""
    code = "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))
    while code == previous:
        code = "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))
    return code


def verify_code(expected: str, candidate) -> bool:
    # Case-sensitive on purpose; generated codes are already upper case.
    return isinstance(candidate, str) and candidate == expected
