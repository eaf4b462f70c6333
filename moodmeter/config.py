import logging
import os

APP_TITLE = "Mood Meter"
DB_PATH = os.getenv("MOODMETER_DB") or "data/moodmeter.db"

# Local LLM (Ollama) used for energy analysis
OLLAMA_URL = os.getenv("OLLAMA_URL") or "http://127.0.0.1:11434"
LLM_MODEL = os.getenv("LLM_MODEL") or "qwen2.5:3b-instruct"
LLM_TIMEOUT_SEC = int(os.getenv("LLM_TIMEOUT_SEC") or 60)

LOG_LEVEL = os.getenv("LOG_LEVEL") or "INFO"


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or LOG_LEVEL).upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
