# config.py
"""Environment-based configuration. A .env file is loaded by main.py."""
import os

FAILURE_MODES = ("degrade", "fail_fast")


class Settings:
    def __init__(self):
        self.openai_api_key = os.getenv("OPENAI_API_KEY", "")
        self.openai_model = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
        self.openai_base_url = os.getenv("OPENAI_BASE_URL") or None
        self.openai_timeout = float(os.getenv("OPENAI_TIMEOUT", "20"))

        self.failure_mode = os.getenv("CLASSIFIER_FAILURE_MODE", "degrade").strip().lower()
        if self.failure_mode not in FAILURE_MODES:
            raise RuntimeError(
                f"CLASSIFIER_FAILURE_MODE must be one of {', '.join(FAILURE_MODES)}, got {self.failure_mode!r}"
            )

        self.host = os.getenv("HOST", "0.0.0.0")
        self.port = int(os.getenv("PORT", "8000"))


_settings = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
