"""
Configuration settings for the Question Bank Analyzer.
"""
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False
    )

    # Application Configuration
    app_name: str = "Question Bank Analyzer"
    app_version: str = "0.1.0"
    debug: bool = False
    log_level: str = "INFO"
    log_dir: str = "logs"
    log_buffer_size: int = 1000
    slow_operation_seconds: float = 1.0

    # Server Configuration
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: List[str] = ["http://localhost:3000"]

    # File Storage
    storage_path: str = "./data/files"

    # Analysis model (OpenAI-compatible endpoint)
    analysis_api_key: Optional[str] = None
    analysis_base_url: str = "https://api.moonshot.cn/v1"
    analysis_model_name: str = "moonshot-v1-32k"
    request_timeout: int = 120
    temperature: float = 0.7
    max_tokens: int = 4096

    # Text Processing
    chunk_size: int = 1000
    chunk_overlap: int = 0

    # Pipeline
    large_document_threshold: int = 400
    batch_size: int = 20
    context_max_tokens: int = 4000
    context_top_k: int = 10


# Global settings instance
settings = Settings()

def get_settings() -> Settings:
    """获取全局配置实例"""
    return settings
