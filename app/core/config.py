from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    app_name: str = "AI Interview Coach"
    api_prefix: str = "/api"
    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    openai_temperature: float = 0.7
    openai_timeout_seconds: float = 60.0

    # Retry/backoff for transient LLM overload
    llm_retries: int = 5
    llm_initial_delay_seconds: float = 2.0
    llm_deadline_seconds: Optional[float] = None

    max_questions: int = 5
    answer_lock_timeout_seconds: float = 120.0

    database_url: str = "sqlite:///./interview_coach.db"

    log_level: str = "INFO"
    log_json: bool = False

    @property
    def is_production(self) -> bool:
        return not self.database_url.startswith("sqlite")


settings = Settings()
