from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    database_url: str = "sqlite+aiosqlite:///./data/db.sqlite3"
    api_key: str = ""  # empty = no auth check (local dev)
    data_dir: str = "./data"
    log_level: str = "INFO"
    max_photo_size_bytes: int = 20 * 1024 * 1024  # 20MB
    photo_target_kb: int = 500
    photo_fallback_kb: int = 400
    storage_backend: str = "filesystem"  # "filesystem" | "http"
    storage_bucket: str = "report-photos"
    storage_url: str = ""
    storage_service_key: str = ""
    public_base_url: str = "http://localhost:8000"
    submission_reset_delay_seconds: float = 1.5
    cors_origins: list[str] = ["http://localhost:8000", "http://localhost:5173"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
