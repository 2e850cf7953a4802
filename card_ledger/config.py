"""Configuration management for card-ledger."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from card_ledger.exceptions import ConfigurationError


@dataclass
class KafkaConfig:
    """Kafka producer configuration for ledger event publishing."""

    bootstrap_servers: str = "localhost:9092"
    acks: str = "all"
    batch_size: int = 16384
    linger_ms: int = 5
    compression: str = "snappy"
    retries: int = 3

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
class PostgresConfig:
    """PostgreSQL connection configuration."""

    host: str = "localhost"
    port: int = 5432
    database: str = "cardledger"
    user: str = "postgres"
    password: str = "postgres"

    @property
    def connection_string(self) -> str:
        """Get connection string."""
        return f"postgresql://{self.user}:{self.password}@{self.host}:{self.port}/{self.database}"


@dataclass
class LedgerConfig:
    """Business defaults for cards, expenses and analytics."""

    default_page_size: int = 20
    max_page_size: int = 100
    default_interest_rate: Decimal = Decimal("18.5")
    default_card_color: str = "#1976d2"
    high_utilization_threshold: Decimal = Decimal("70")
    savings_threshold: Decimal = Decimal("200")
    ledger_topic: str = "ledger.entries"


@dataclass
class AppConfig:
    """Main configuration for card-ledger."""

    postgres: PostgresConfig = field(default_factory=PostgresConfig)
    kafka: KafkaConfig | None = None
    ledger: LedgerConfig = field(default_factory=LedgerConfig)
    log_level: str = "INFO"
    log_format: str = "standard"

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create config from environment variables."""
        import os

        postgres = PostgresConfig(
            host=os.getenv("POSTGRES_HOST", "localhost"),
            port=_int_env("POSTGRES_PORT", "5432"),
            database=os.getenv("POSTGRES_DB", "cardledger"),
            user=os.getenv("POSTGRES_USER", "postgres"),
            password=os.getenv("POSTGRES_PASSWORD", "postgres"),
        )

        # Event publishing is optional; only configured when a broker is given
        kafka = None
        if os.getenv("KAFKA_BOOTSTRAP_SERVERS"):
            kafka = KafkaConfig(
                bootstrap_servers=os.environ["KAFKA_BOOTSTRAP_SERVERS"],
                acks=os.getenv("KAFKA_ACKS", "all"),
            )

        ledger = LedgerConfig(
            default_page_size=_int_env("LEDGER_PAGE_SIZE", "20"),
            max_page_size=_int_env("LEDGER_MAX_PAGE_SIZE", "100"),
            high_utilization_threshold=_decimal_env("LEDGER_HIGH_UTILIZATION", "70"),
            savings_threshold=_decimal_env("LEDGER_SAVINGS_THRESHOLD", "200"),
            ledger_topic=os.getenv("LEDGER_TOPIC", "ledger.entries"),
        )

        return cls(
            postgres=postgres,
            kafka=kafka,
            ledger=ledger,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "standard"),
        )


def _int_env(name: str, default: str) -> int:
    import os

    raw = os.getenv(name, default)
    try:
        return int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e


def _decimal_env(name: str, default: str) -> Decimal:
    import os
    from decimal import InvalidOperation

    raw = os.getenv(name, default)
    try:
        return Decimal(raw)
    except InvalidOperation as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e
