import os
from pathlib import Path


_DATA_DIR = Path(__file__).resolve().parents[1] / "data"


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev")

    # CORS
    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")

    # Reverse proxy / IP headers
    TRUST_PROXY_HEADERS = os.environ.get("TRUST_PROXY_HEADERS", "1") == "1"

    # Empty means "pick per platform" (see server.create_app)
    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "").strip()

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Question bank
    DATA_DIR = os.environ.get("DATA_DIR", str(_DATA_DIR))
    QUESTIONS_PATH = os.environ.get("QUESTIONS_PATH", str(_DATA_DIR / "catch_questions.json"))

    # Room / roster
    ROOM_CODE_LENGTH = int(os.environ.get("ROOM_CODE_LENGTH", "4"))
    TEAM_COUNT = int(os.environ.get("TEAM_COUNT", "6"))
    TEAM_SUFFIX = os.environ.get("TEAM_SUFFIX", "조")
    HOST_LABEL = os.environ.get("HOST_LABEL", "출제자")
    GUESSER_LABEL = os.environ.get("GUESSER_LABEL", "참가자")
    NICKNAME_MAX_LEN = int(os.environ.get("NICKNAME_MAX_LEN", "16"))
    ONE_HOST_PER_TEAM = os.environ.get("ONE_HOST_PER_TEAM", "0") == "1"

    # Game
    MIN_PLAYERS = int(os.environ.get("MIN_PLAYERS", "2"))
    START_DELAY_SEC = float(os.environ.get("START_DELAY_SEC", "3"))
    # Negative disables eviction on disconnect.
    DISCONNECT_GRACE_SEC = float(os.environ.get("DISCONNECT_GRACE_SEC", "10"))
    REVEAL_ANSWER_TO_GUESSERS = os.environ.get("REVEAL_ANSWER_TO_GUESSERS", "0") == "1"
