"""Application settings using Pydantic BaseSettings for environment variable management."""

from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """
    Global application settings loaded from environment variables.

    Attributes:
        gemini_api_key: Google Gemini API key (empty disables the LLM, classifier falls back)
        gemini_model: Default Gemini model to use
        max_rpm: Maximum LLM requests per minute
        max_tpm: Maximum LLM tokens per minute
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_format: Log output format (json for production, console for dev)
        llm_temperature: Sampling temperature for classification calls
        llm_max_output_tokens: Output token budget for classification calls
        llm_timeout_seconds: Per-call budget for the LLM
        source_timeout_seconds: Per-call budget for each validation source
        prefilter_threshold: Keyword score at which a post warrants classification
        classification_gate: Classifier confidence that must be exceeded to validate
        confirmation_threshold: Fused confidence that must be exceeded to confirm
        alert_threshold: Fused confidence that must be exceeded to raise an alert
        confidence_floor: Lowest confidence an event can be lowered to
        confidence_ceiling: Highest confidence an event can be raised to
        pipeline_concurrency: Concurrent tasks drained per batch
        event_ttl_days: Store expiry for event records
        alert_ttl_days: Store expiry for alert records
        google_maps_api_key: Google Geocoding key (optional, Nominatim otherwise)
        openweather_api_key: OpenWeatherMap key (optional, source skipped otherwise)
        firms_feed_url: NASA FIRMS active-fire CSV feed
        event_store_path: Optional JSON persistence path for the event store
    """

    gemini_api_key: str = Field(
        default="",
        description="Google Gemini API key"
    )
    gemini_model: str = Field(
        default="gemini-1.5-flash",
        description="Default Gemini model identifier"
    )
    max_rpm: int = Field(
        default=15,
        description="Maximum requests per minute (free tier limit)"
    )
    max_tpm: int = Field(
        default=1_000_000,
        description="Maximum tokens per minute"
    )
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )
    log_format: str = Field(
        default="json",
        description="Log output format: json or console"
    )

    llm_temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=1.0,
        description="Low temperature keeps classification near-deterministic"
    )
    llm_max_output_tokens: int = Field(
        default=1500,
        description="Maximum tokens the model may return per classification"
    )
    llm_timeout_seconds: float = Field(
        default=15.0,
        description="Budget for one classification call"
    )
    source_timeout_seconds: float = Field(
        default=10.0,
        description="Budget for one validation source call"
    )

    prefilter_threshold: int = Field(
        default=15,
        description="Keyword score at or above which the classifier runs"
    )
    classification_gate: int = Field(
        default=70,
        description="Classifier confidence must exceed this to enter validation"
    )
    confirmation_threshold: float = Field(
        default=70.0,
        description="Fused confidence must exceed this to confirm a disaster"
    )
    alert_threshold: float = Field(
        default=70.0,
        description="Fused confidence must exceed this to raise a public alert"
    )
    confidence_floor: float = Field(
        default=0.0,
        description="Lower bound for event confidence after rejection"
    )
    confidence_ceiling: float = Field(
        default=100.0,
        description="Upper bound for event confidence after confirmation"
    )

    pipeline_concurrency: int = Field(
        default=10,
        description="Maximum tasks processed concurrently per batch"
    )
    event_ttl_days: int = Field(
        default=30,
        description="Event record time-to-live"
    )
    alert_ttl_days: int = Field(
        default=7,
        description="Alert record time-to-live"
    )

    google_maps_api_key: str | None = Field(
        default=None,
        description="Google Maps Geocoding API key"
    )
    openweather_api_key: str | None = Field(
        default=None,
        description="OpenWeatherMap API key"
    )
    firms_feed_url: str = Field(
        default="https://firms.modaps.eosdis.nasa.gov/active_fire/text/Global_MCD14DL_NRT.txt",
        description="NASA FIRMS active fire CSV feed"
    )
    nominatim_user_agent: str = Field(
        default="eas_system/0.1.0",
        description="User agent sent to OpenStreetMap Nominatim"
    )
    event_store_path: str | None = Field(
        default=None,
        description="JSON file for event store persistence (memory-only if unset)"
    )

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }


# Singleton instance - import this throughout the application
settings = Settings()
