import os
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration settings"""

    # Application
    app_name: str = "ExamHub"
    debug: bool = False
    api_version: str = "v1"
    log_level: str = "INFO"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Database
    database_url: str = "sqlite:///./examhub.db"
    database_pool_size: int = 5

    # Redis exam cache (disabled when unset)
    redis_url: Optional[str] = None
    exam_cache_ttl_seconds: int = 3600

    # LLM
    llm_provider: str = "gemini"  # "gemini" or "openai"
    llm_temperature: float = 0.7
    llm_candidate_count: int = 1
    gemini_api_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_model: str = "gemini-1.5-flash"
    gemini_api_key: str = ""
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    http_timeout_seconds: float = 30.0

    # Prompt templates
    prompts_dir: str = os.path.join(os.path.dirname(__file__), "prompts")

    # Verse lookup
    quran_api_base_url: str = "https://api.alquran.cloud/v1/ayah"
    quran_edition: str = "quran-indopak"

    # CORS
    cors_origins: str = "http://localhost:8080,http://localhost:3000"

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string"""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def text_generation_url(self) -> str:
        """generateContent endpoint for the configured Gemini model."""
        base = self.gemini_api_base_url.rstrip("/")
        return f"{base}/models/{self.gemini_model}:generateContent?key={self.gemini_api_key}"

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"
