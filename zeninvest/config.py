from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Claude API (coaching critique)
    anthropic_api_key: str = ""
    coach_model: str = "claude-sonnet-4-20250514"
    coach_max_tokens: int = 600
    coach_timeout_seconds: float = 8.0

    # Web server
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Auth
    jwt_secret: str = "change-this-to-a-random-secret"
    jwt_expiry_hours: int = 168  # 7 days

    # Database
    db_path: str = "data/zeninvest.db"
    db_cache_mb: int = 16

    # Logging
    log_path: str = "data/zeninvest.log"
    log_level: str = "INFO"  # console; the file sink always records DEBUG
    log_retention_days: int = 30

    # Journal rules
    min_review_notes_length: int = 5  # 0 disables the check

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
