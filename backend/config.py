from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    log_level: str = "INFO"

    # CORS: comma-separated origins allowed to access the API
    cors_origins: str = "http://localhost:9002"

    # Entity classification backend: "llm", "pattern", "presidio"
    classifier_backend: str = "llm"

    # LLM Provider settings
    default_provider: str = "gemini"     # "ollama", "openai", "anthropic", "gemini"
    llm_temperature: float = 0.0         # pinned so repeated runs agree

    # Ollama (local)
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llama3"

    # OpenAI
    openai_api_key: str = ""
    openai_model: str = "gpt-4o"

    # Anthropic
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-5-20250929"

    # Google Gemini
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"

    # Masking
    detection_timeout: float = 120.0     # seconds for the single classification call
    max_document_chars: int = 200_000
    pii_confidence_threshold: float = 0.7

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


@lru_cache
def get_settings() -> Settings:
    return Settings()
