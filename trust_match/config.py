"""Configuration management for trust-match."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from trust_match.exceptions import ConfigurationError


@dataclass
class PostgresConfig:
    """PostgreSQL connection configuration."""

    host: str = "localhost"
    port: int = 5432
    database: str = "trustmatch"
    user: str = "postgres"
    password: str = "postgres"
    lock_timeout_ms: int = 5000  # bound on waiting for an application row lock
    statement_timeout_ms: int = 30000

    @property
    def connection_string(self) -> str:
        """Get connection string."""
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"


@dataclass
class KafkaConfig:
    """Kafka producer configuration for audit events."""

    bootstrap_servers: str = "localhost:9092"
    acks: str = "all"
    batch_size: int = 16384
    linger_ms: int = 5
    compression: str = "snappy"
    retries: int = 3
    topic_prefix: str = "dev.scholarships"

    def to_dict(self) -> dict[str, Any]:
        """Convert to confluent-kafka config dict."""
        return {
            "bootstrap.servers": self.bootstrap_servers,
            "acks": self.acks,
            "batch.size": self.batch_size,
            "linger.ms": self.linger_ms,
            "compression.type": self.compression,
            "retries": self.retries,
        }


@dataclass
class OutputConfig:
    """Output configuration."""

    json_output_dir: Path = field(default_factory=lambda: Path("output"))
    pretty_json: bool = False


@dataclass
class MatchingConfig:
    """Dashboard and approval behaviour."""

    approval_lock_timeout_seconds: float = 5.0
    default_view: str = "filtered"  # "filtered" (smart filtering) or "all"


@dataclass
class SampleConfig:
    """Configuration for sample funding rounds."""

    num_applications: int = 50
    num_trusts: int = 5
    locale: str = "en_IN"


@dataclass
class TrustMatchConfig:
    """Main configuration for trust-match."""

    postgres: PostgresConfig = field(default_factory=PostgresConfig)
    kafka: KafkaConfig = field(default_factory=KafkaConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    sample: SampleConfig | None = None
    seed: int | None = None
    log_level: str = "INFO"
    log_format: str = "standard"  # "standard" or "json"

    @classmethod
    def from_env(cls) -> "TrustMatchConfig":
        """Create config from environment variables.

        Raises
        ------
        ConfigurationError
            If a numeric variable cannot be parsed or the view mode or log
            format is unknown.
        """
        postgres = PostgresConfig(
            host=os.getenv("POSTGRES_HOST", "localhost"),
            port=_env_int("POSTGRES_PORT", 5432),
            database=os.getenv("POSTGRES_DB", "trustmatch"),
            user=os.getenv("POSTGRES_USER", "postgres"),
            password=os.getenv("POSTGRES_PASSWORD", "postgres"),
            lock_timeout_ms=_env_int("POSTGRES_LOCK_TIMEOUT_MS", 5000),
            statement_timeout_ms=_env_int("POSTGRES_STATEMENT_TIMEOUT_MS", 30000),
        )

        kafka = KafkaConfig(
            bootstrap_servers=os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092"),
            acks=os.getenv("KAFKA_ACKS", "all"),
            topic_prefix=os.getenv("TOPIC_PREFIX", "dev.scholarships"),
        )

        output = OutputConfig(
            json_output_dir=Path(os.getenv("OUTPUT_DIR", "output")),
            pretty_json=os.getenv("PRETTY_JSON", "false").lower() == "true",
        )

        default_view = os.getenv("DEFAULT_VIEW", "filtered")
        if default_view not in ("filtered", "all"):
            raise ConfigurationError(f"DEFAULT_VIEW must be 'filtered' or 'all', got {default_view!r}")

        matching = MatchingConfig(
            approval_lock_timeout_seconds=_env_float("APPROVAL_LOCK_TIMEOUT", 5.0),
            default_view=default_view,
        )

        seed = os.getenv("SEED")
        log_format = os.getenv("LOG_FORMAT", "standard")
        if log_format not in ("standard", "json"):
            raise ConfigurationError(f"LOG_FORMAT must be 'standard' or 'json', got {log_format!r}")


        return cls(
            postgres=postgres,
            kafka=kafka,
            output=output,
            matching=matching,
            seed=_env_int("SEED", 0) if seed else None,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=log_format,
        )


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e
