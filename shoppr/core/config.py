from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    APP_NAME: str = "Shoppr API"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    API_PREFIX: str = "/shoppr/api/v1"
    CORS_ORIGINS: list[str] = ["*"]

    # MongoDB settings (backs the key-value store)
    MONGO_URL: str = "mongodb://localhost:27017"
    MONGO_DB_NAME: str = "shoppr"
    KV_COLLECTION: str = "kv_store"

    # OpenAI settings (query optimization + ranking)
    OPENAI_API_KEY: str = ""  # Empty disables AI and forces the fallback paths
    OPENAI_BASE_URL: str | None = None
    QUERY_OPTIMIZER_MODEL: str = "gpt-4o-mini"
    RANKER_MODEL: str = "gpt-4o-mini"
    OPTIMIZER_TEMPERATURE: float = 0.7
    RANKER_TEMPERATURE: float = 0.3  # Lower for more consistent ranking
    OPTIMIZER_MAX_TOKENS: int = 200
    RANKER_MAX_TOKENS: int = 500

    # Catalog (Rainforest product search) settings
    CATALOG_API_URL: str = "https://api.rainforestapi.com/request"
    CATALOG_API_KEY: str = ""
    CATALOG_DOMAIN: str = "amazon.co.uk"
    CATALOG_LANGUAGE: str = "en_US"
    CATALOG_CURRENCY: str = "gbp"
    CATALOG_MIN_REVIEWS: int = 10
    DEFAULT_CURRENCY: str = "GBP"

    # Hard timeouts for upstream calls (seconds)
    OPTIMIZER_TIMEOUT: float = 8.0
    RANKER_TIMEOUT: float = 10.0
    CATALOG_TIMEOUT: float = 15.0

    # Search limits
    RANK_CANDIDATE_LIMIT: int = 20  # Only the first N candidates are sent to the ranker
    RESULT_CANDIDATE_LIMIT: int = 25  # Catalog listings kept per search

    # Caching (seconds)
    AI_CACHE_TTL: float = 600.0
    AI_CACHE_SWEEP_INTERVAL: float = 300.0
    CLIENT_CACHE_TTL: float = 300.0


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
