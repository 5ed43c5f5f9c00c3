"""
Application settings for the bracket balance service.
Externalizes config so the same image runs locally and in containers.
"""
import os


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class AppSettings:
    """Application settings with environment variable support."""

    def __init__(self):
        self.service_name: str = os.getenv("SERVICE_NAME", "bracket-balance-api")
        self.api_version: str = os.getenv("API_VERSION", "1.0.0")
        self.environment: str = os.getenv("ENVIRONMENT", "development")
        self.port: int = int(os.getenv("PORT", "8000"))
        self.build_commit: str = os.getenv("BUILD_COMMIT", "unknown")
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()

        # Longest input accepted by /validate and /fix
        self.max_input_chars: int = int(os.getenv("MAX_INPUT_CHARS", "100000"))

        # Rate limiting and payload cap (per client)
        self.rate_limit_per_minute: int = int(os.getenv("RATE_LIMIT_PER_MINUTE", "600"))
        self.max_request_payload_mb: float = float(os.getenv("MAX_REQUEST_PAYLOAD_MB", "1"))

        # Metrics
        self.enable_metrics: bool = _flag("ENABLE_METRICS", "true")
        self.metrics_namespace: str = os.getenv("METRICS_NAMESPACE", "myapp")
        self.heartbeat_interval_seconds: float = float(os.getenv("HEARTBEAT_INTERVAL_SECONDS", "2"))

        # Middleware toggles
        self.enable_audit_logging: bool = _flag("ENABLE_AUDIT_LOGGING", "true")
        self.enable_redaction: bool = _flag("ENABLE_REDACTION", "true")
        self.enable_rate_limiting: bool = _flag("ENABLE_RATE_LIMITING", "true")

    @property
    def smoke_key(self):
        # Read per request so the key can be rotated without a restart
        return os.getenv("SMOKE_KEY")


settings = AppSettings()
