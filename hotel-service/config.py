from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    # Service settings
    service_name: str = "hotel-booking-service"
    service_version: str = "1.0.0"

    # Hotel backend settings
    backend_base_url: str = "http://localhost:8080"
    backend_timeout_seconds: float = 10.0

    # OpenTelemetry settings
    otel_enabled: bool = True
    otel_exporter_otlp_endpoint: str = "http://jaeger:4318"
    otel_exporter_otlp_metrics_endpoint: str = ""
    otel_exporter_otlp_metrics_headers: str = ""
    otel_service_name: str = "hotel-booking-service"

    # CORS settings
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:8080"]

    class Config:
        env_file = ".env"
        case_sensitive = False


settings = Settings()
