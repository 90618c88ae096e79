from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Google Places
    google_places_api_key: str = ""
    google_places_base_url: str = "https://maps.googleapis.com/maps/api/place"
    http_timeout_seconds: float = 15.0

    # Reddit (social text source)
    reddit_enabled: bool = False  # False = deterministic mock posts
    reddit_base_url: str = "https://www.reddit.com"
    reddit_user_agent: str = "venuescout/0.1"
    reddit_requests_per_minute: int = 30

    # Anthropic
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-sonnet-4-5-20250929"

    # OpenAI
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"

    # AI enhancement
    ai_enhancement_enabled: bool = False

    # Adaptive cache
    cache_max_size: int = 1000
    cache_default_ttl_seconds: float = 3600.0  # 1 hour
    cache_cleanup_interval_seconds: int = 300  # 5 minutes
    cache_compression_enabled: bool = True
    recommendation_cache_ttl_seconds: float = 1800.0

    # Pipeline
    pipeline_timeout_seconds: float = 30.0
    pipeline_retry_attempts: int = 2
    pipeline_retry_base_delay_seconds: float = 1.0
    quality_threshold: float = 40.0
    max_recommendations: int = 30

    # Discovery
    discovery_max_concurrency: int = 3
    discovery_final_limit: int = 20
    max_venues_per_source: int = 50
    extraction_confidence_threshold: float = 0.4

    # Fallback
    max_fallback_venues: int = 20

    # Scheduler
    scheduler_enabled: bool = True

    # CORS
    cors_origins: str = "http://localhost:5173"

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",")]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
