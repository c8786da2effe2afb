import os
from dataclasses import dataclass


@dataclass(frozen=True)
class Settings:
    trial_days: int
    premium_days: int
    membership_path: str
    openai_model: str
    openai_max_tokens: int
    openai_max_tokens_detailed: int
    allowed_origins: str
    log_level: str


def load_settings() -> Settings:
    return Settings(
        trial_days=int(os.getenv("TRIAL_DAYS", "3")),
        premium_days=int(os.getenv("PREMIUM_DAYS", "365")),
        membership_path=os.getenv("MEMBERSHIP_PATH", "data/membership.json"),
        openai_model=os.getenv("OPENAI_MODEL", "gpt-4o-mini"),
        openai_max_tokens=int(os.getenv("OPENAI_MAX_TOKENS", "4000")),
        openai_max_tokens_detailed=int(os.getenv("OPENAI_MAX_TOKENS_DETAILED", "8000")),
        allowed_origins=os.getenv("ALLOWED_ORIGINS", "*"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
