from __future__ import annotations
from pydantic_settings import BaseSettings
from pydantic import Field
import secrets

class Settings(BaseSettings):
    database_url: str = Field(..., alias="DATABASE_URL")
    auth_jwks_url: str = Field(..., alias="AUTH_JWKS_URL")
    organiser_role: str = Field("organiser", alias="ORGANISER_ROLE")

    # Volunteer access codes
    code_ttl_minutes: int = Field(default=60, alias="CODE_TTL_MINUTES")
    code_length: int = Field(default=5, alias="CODE_LENGTH")
    enable_code_sweeper: bool = Field(default=True, alias="ENABLE_CODE_SWEEPER")
    code_sweep_interval_sec: int = Field(default=60, alias="CODE_SWEEP_INTERVAL_SEC")

    # Volunteer sessions: "signed" (JWT) or "memory"
    session_backend: str = Field(default="signed", alias="SESSION_BACKEND")
    session_secret: str | None = Field(default=None, alias="SESSION_SECRET")
    session_ttl_hours: int = Field(default=24, alias="SESSION_TTL_HOURS")

    # Redis
    redis_url: str = Field("redis://127.0.0.1:6379/0", alias="REDIS_URL")
    rl_enabled: bool = Field(default=True, alias="RL_ENABLED")
    rl_window_seconds: int = Field(default=60, alias="RL_WINDOW_SECONDS")
    rl_max_reqs: int = Field(default=10, alias="RL_MAX_REQS")

    # NATS
    nats_urls: str = Field("nats://127.0.0.1:4222", alias="NATS_URLS")
    nats_subject_notify: str = Field("scoutinghike.notifications", alias="NATS_SUBJECT_NOTIFY")
    nats_subject_checkpoint: str = Field("scoutinghike.checkpoints", alias="NATS_SUBJECT_CHECKPOINT")
    use_nats: bool = Field(default=True, alias="USE_NATS")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    cors_origins: str = Field(
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000,http://127.0.0.1:3000",
        alias="CORS_ORIGINS",
    )

    class Config:
        env_file = ".env"
        env_prefix = ""
        case_sensitive = False

    # ephemeral fallback if no SESSION_SECRET provided
    @property
    def session_secret_effective(self) -> str:
        if not self.session_secret:
            self.session_secret = secrets.token_urlsafe(48)
        return self.session_secret

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

_settings: Settings | None = None

def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
