from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    database_url: str = "sqlite:///./data/jobcompass.db"
    app_password: str = "changeme"
    secret_key: str = "dev-secret-key-change-in-production"
    session_ttl_days: int = 30
    debug: bool = False
    log_level: str = "INFO"

    # AI provider (OpenAI chat completions)
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    ai_temperature: float = 0.1
    ai_max_tokens: int = 2048
    ai_timeout: float = 60.0
    # Validate and clamp AI scores instead of storing them verbatim
    strict_match_validation: bool = False

    # Tavily search API
    tavily_api_key: str = ""
    tavily_base_url: str = "https://api.tavily.com"
    tavily_timeout: float = 60.0
    tavily_max_results: int = 10

    # Bright Data scraper API
    bright_data_api_url: str = "https://api.brightdata.com"
    bright_data_username: str = ""
    bright_data_password: str = ""
    bright_data_customer_id: str = ""
    bright_data_zone: str = "linkedin"
    bright_data_timeout: float = 120.0

    # Listing normalization
    description_max_length: int = 10000
    listing_ttl_days: int = 30

    # Redis configuration
    redis_url: str = "redis://localhost:6379"

    # Celery configuration
    celery_broker_url: str = "redis://localhost:6379/0"
    celery_result_backend: str = "redis://localhost:6379/0"

    # Board polling
    scheduler_enabled: bool = True
    scrape_interval_hours: int = 1

    class Config:
        env_file = ".env"


@lru_cache
def get_settings() -> Settings:
    return Settings()
