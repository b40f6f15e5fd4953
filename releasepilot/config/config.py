from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="RELEASE_PILOT_", env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    app_version: str = "0.1.0"
    api_url: str = "https://api.github.com"
    token: str | None = None
    proxy_key: str | None = None
    user_agent: str = f"release-pilot/{app_version}"
    request_timeout_seconds: float = 30.0
    per_page: int = 100
    commit_query_retries: int = 3
    max_files_changed: int = 64
    max_labels: int = 16
    log_level: str = "INFO"
    log_json: bool = True


settings = Settings()
