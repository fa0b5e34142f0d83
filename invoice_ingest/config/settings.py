from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_env: str = "dev"
    log_level: str = "INFO"

    db_host: str = "host.docker.internal"
    db_port: int = 5432
    db_database: str = "invoices"
    db_username: str = "invoices"
    db_password: str = "secret"
    persistence_backend: str = "postgres"

    max_job_attempts: int = 3
    max_concurrent_uploads: int = 2
    max_batch_files: int = 10
    max_file_size_bytes: int = 10 * 1024 * 1024

    pdf_engine: str = "pymupdf"
    pdf_scale: float = 2.0
    pdf_max_width: int = 1920
    pdf_max_height: int = 1080
    pdf_max_pages: int = 3
    pdf_output_quality: float = 0.9
    pdf_page_spacing: int = 20
    pdf_add_page_separator: bool = True
    pdf_separator_color: str = "#e0e0e0"
    pdf_separator_thickness: int = 2

    compression_target_bytes: int = 1024 * 1024
    compression_quality: float = 0.8
    compression_max_attempts: int = 5
    compression_max_width: int = 1920
    compression_max_height: int = 1080
    compression_fallback_to_original: bool = False

    storage_backend: str = "local"
    storage_local_root: str = "/app/files"
    s3_bucket: str = ""
    s3_region: str = "ap-southeast-2"
    s3_endpoint_url: str | None = None
    aws_access_key_id: str | None = None
    aws_secret_access_key: str | None = None

    extraction_provider: str = "openai"
    extraction_api_key: str = ""
    extraction_model_name: str = "gpt-4o"
    extraction_base_url: str | None = None
    extraction_timeout_seconds: int = 60
    extraction_temperature: float = 0.1
    extraction_max_tokens: int = 4000
    extraction_max_attempts: int = 3
    extraction_retry_delay_seconds: float = 1.0

    anomaly_duplicate_window_days: int = 7
    anomaly_amount_spike_factor: float = 3.0
    anomaly_min_history: int = 3
    anomaly_old_date_days: int = 365
    anomaly_supplier_similarity: float = 0.85
