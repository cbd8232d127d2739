from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "localhost"
    db_port: int = 5432
    db_database: str = "docanalysis"
    db_username: str = "docanalysis"
    db_password: str = "secret"
    db_pool_min_size: int = 1
    db_pool_max_size: int = 10

    storage_disk: str = "local"
    chunks_root: str = "./chunk"
    files_root: str = "./files"
    max_chunk_size_bytes: int = 2 * 1024 * 1024

    stale_upload_ttl_seconds: int = 86400
    sweep_interval_seconds: int = 300

    analysis_base_url: str = "http://localhost:5678"
    analysis_submit_path: str = "process"
    analysis_timeout_seconds: int = 10

    jwt_secret: str = "change-me"
    jwt_algorithm: str = "HS256"
    jwt_expire_hours: int = 12

    list_default_limit: int = 250
    list_max_limit: int = 250
