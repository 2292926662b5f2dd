"""Application configuration management."""

import logging
from functools import lru_cache
from typing import Any

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings managed via Pydantic BaseSettings.

    Attributes:
        API_VERSION: The version of the API.
        API_KEY: Shared secret required in the API key header. Empty denies
            every protected request.
        API_KEY_HEADER: Name of the header carrying the shared secret.
        OTEL_ENABLED: Whether OpenTelemetry instrumentation is enabled.
        OTEL_SERVICE_NAME: The service name for OpenTelemetry.
        OTEL_EXPORTER_OTLP_ENDPOINT: The OTLP endpoint for OpenTelemetry.
        OTEL_TRACES_SAMPLER_ARG: The sampling rate for traces.
        OTEL_PYTHON_FASTAPI_EXCLUDED_URLS: URLs to exclude from tracing.
        OTLP_SECURE: Whether to use a secure connection for OTLP.
        PROMETHEUS_ENABLED: Whether request metrics and /metrics are exposed.
        PROMETHEUS_MONITORED_PATHS: Comma-separated paths to collect metrics for.
        LOG_LEVEL: The logging level for the application.
        SERVER_HOST: The host address for the server.
        SERVER_PORT: The port number for the server.
        NLP_ENGINE_NAME: The name of the NLP engine (e.g., "spacy").
        NLP_CONFIG_FILE: Optional presidio NLP engine YAML file. Overrides
            NLP_ENGINE_NAME and SPACY_MODEL when set.
        SPACY_MODEL: The spaCy pipeline to load.
        LANGUAGE: Language code of the loaded pipeline.
        ANALYZE_TOKENS: Whether tokenization and tagging are served.
        ANALYZE_SENTENCES: Whether sentence segmentation is served.
        ANALYZE_ENTITIES: Whether named-entity extraction is served.
        ANALYSIS_TIMEOUT: Seconds a single analysis may run before failing.
        ANALYSIS_MAX_WORKERS: Analyzer threads allowed at once, including ones
            still finishing after their request timed out.
        MAX_TEXT_LENGTH: Maximum allowed text length for analysis.
        ALLOWED_ORIGINS: Comma-separated string of allowed CORS origins.
    """

    # API Version
    API_VERSION: str = "v1"

    # Authentication
    API_KEY: SecretStr = SecretStr("")
    API_KEY_HEADER: str = "X-API-Key"

    # OpenTelemetry Configuration
    OTEL_ENABLED: bool = True
    OTEL_SERVICE_NAME: str = "prose-fastapi"
    OTEL_EXPORTER_OTLP_ENDPOINT: str = "http://localhost:4317"
    OTEL_TRACES_SAMPLER_ARG: float = 1.0
    OTEL_PYTHON_FASTAPI_EXCLUDED_URLS: str = "health,metrics"
    OTLP_SECURE: bool = False

    # Prometheus Configuration
    PROMETHEUS_ENABLED: bool = True
    PROMETHEUS_MONITORED_PATHS: str = "tokens,entities,sentences"

    # Logging Configuration
    LOG_LEVEL: str = "INFO"

    # Server Configuration
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 8080

    # NLP Configuration
    NLP_ENGINE_NAME: str = "spacy"
    NLP_CONFIG_FILE: str | None = None
    SPACY_MODEL: str = "en_core_web_sm"
    LANGUAGE: str = "en"
    ANALYZE_TOKENS: bool = True
    ANALYZE_SENTENCES: bool = True
    ANALYZE_ENTITIES: bool = True
    ANALYSIS_TIMEOUT: float = 10.0
    ANALYSIS_MAX_WORKERS: int = 8
    MAX_TEXT_LENGTH: int = 102400
    ALLOWED_ORIGINS: str = ""

    @model_validator(mode="before")
    @classmethod
    def _strip_inline_comments(cls, data: Any) -> Any:
        if isinstance(data, dict):
            cleaned_data = {}
            for key, value in data.items():
                # Secrets may legitimately contain "#"
                if isinstance(value, str) and key != "API_KEY":
                    cleaned_data[key] = value.split("#")[0].strip()
                else:
                    cleaned_data[key] = value
            return cleaned_data
        return data

    @property
    def cors_origins(self) -> list[str]:
        """Get the list of allowed CORS origins.

        Returns:
            A list of allowed CORS origins split from the ALLOWED_ORIGINS setting.
            If no origins are configured, returns an empty list.
        """
        return [
            origin.strip()
            for origin in self.ALLOWED_ORIGINS.split(",")
            if origin.strip()
        ]

    @property
    def monitored_paths(self) -> list[str]:
        """Paths Prometheus request metrics are collected for."""
        return [
            f"/{suffix.strip().lstrip('/')}"
            for suffix in self.PROMETHEUS_MONITORED_PATHS.split(",")
            if suffix.strip()
        ]

    @property
    def nlp_configuration(self) -> dict[str, Any]:
        """Construct the NLP engine configuration for presidio's NlpEngineProvider.

        Returns:
            A dictionary of the form::

                {
                    "nlp_engine_name": str,
                    "models": [{"lang_code": str, "model_name": str}],
                }
        """
        return {
            "nlp_engine_name": self.NLP_ENGINE_NAME,
            "models": [{"lang_code": self.LANGUAGE, "model_name": self.SPACY_MODEL}],
        }

    @property
    def log_level(self) -> int:
        """Convert the string log level from settings to a logging constant.

        Returns:
            The integer value of the logging level (e.g., logging.INFO,
            logging.DEBUG). Defaults to logging.INFO if the configured
            LOG_LEVEL is invalid.
        """
        return getattr(logging, self.LOG_LEVEL.upper(), logging.INFO)

    @property
    def auth_configured(self) -> bool:
        """Whether a non-empty shared secret is configured."""
        return bool(self.API_KEY.get_secret_value())

    class Config:
        """Pydantic configuration class for Settings.

        Attributes:
            env_file (str): The name of the environment file to load (e.g., ".env").
            case_sensitive (bool): Whether environment variable names are case-sensitive.
        """

        env_file = ".env"
        case_sensitive = True


@lru_cache()
def get_settings() -> Settings:
    """Create and cache the process-wide Settings instance.

    Only the process entry point calls this. Request handling reads the
    instance stored on ``app.state.settings`` by ``create_app``.

    Returns:
        A cached instance of the Settings class.
    """
    return Settings()
