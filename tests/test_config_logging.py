"""Tests for config and logging."""

import io
import json
import logging
import sys
from decimal import Decimal
from typing import Iterator

import pytest

from card_ledger.config import AppConfig, KafkaConfig, LedgerConfig, PostgresConfig
from card_ledger.exceptions import ConfigurationError
from card_ledger.logging import JsonFormatter, get_logger, setup_logging

ENV_VARS = [
    "POSTGRES_HOST",
    "POSTGRES_PORT",
    "POSTGRES_DB",
    "POSTGRES_USER",
    "POSTGRES_PASSWORD",
    "KAFKA_BOOTSTRAP_SERVERS",
    "KAFKA_ACKS",
    "LEDGER_PAGE_SIZE",
    "LEDGER_MAX_PAGE_SIZE",
    "LEDGER_HIGH_UTILIZATION",
    "LEDGER_SAVINGS_THRESHOLD",
    "LEDGER_TOPIC",
    "LOG_LEVEL",
    "LOG_FORMAT",
]


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def restore_logging() -> Iterator[None]:
    """Put root and package logger state back after setup_logging runs."""
    root = logging.getLogger()
    package = logging.getLogger("card_ledger")
    saved = (root.level, root.handlers[:], package.level)
    yield
    root.setLevel(saved[0])
    root.handlers[:] = saved[1]
    package.setLevel(saved[2])


class TestKafkaConfig:
    def test_default_values(self) -> None:
        config = KafkaConfig()
        assert config.bootstrap_servers == "localhost:9092"
        assert config.acks == "all"
        assert config.compression == "snappy"

    def test_to_dict(self) -> None:
        config = KafkaConfig(bootstrap_servers="kafka:9092", acks="1", linger_ms=10)
        assert config.to_dict() == {
            "bootstrap.servers": "kafka:9092",
            "acks": "1",
            "batch.size": 16384,
            "linger.ms": 10,
            "compression.type": "snappy",
            "retries": 3,
        }


class TestPostgresConfig:
    def test_connection_string(self) -> None:
        config = PostgresConfig(host="db", port=5433, database="ledger", user="app", password="secret")
        assert config.connection_string == "postgresql://app:secret@db:5433/ledger"


class TestLedgerConfig:
    def test_defaults(self) -> None:
        config = LedgerConfig()
        assert config.default_page_size == 20
        assert config.default_interest_rate == Decimal("18.5")
        assert config.default_card_color == "#1976d2"
        assert config.high_utilization_threshold == Decimal("70")
        assert config.ledger_topic == "ledger.entries"


class TestAppConfig:
    def test_from_env_default(self, clean_env: pytest.MonkeyPatch) -> None:
        config = AppConfig.from_env()

        assert config.postgres.host == "localhost"
        assert config.postgres.database == "cardledger"
        assert config.kafka is None
        assert config.ledger.max_page_size == 100
        assert config.log_level == "INFO"
        assert config.log_format == "standard"

    def test_from_env_custom(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("POSTGRES_HOST", "db.example.com")
        clean_env.setenv("POSTGRES_PORT", "6543")
        clean_env.setenv("KAFKA_BOOTSTRAP_SERVERS", "kafka:9092")
        clean_env.setenv("LEDGER_PAGE_SIZE", "50")
        clean_env.setenv("LEDGER_HIGH_UTILIZATION", "80.5")
        clean_env.setenv("LOG_FORMAT", "json")

        config = AppConfig.from_env()

        assert config.postgres.host == "db.example.com"
        assert config.postgres.port == 6543
        assert config.kafka.bootstrap_servers == "kafka:9092"
        assert config.ledger.default_page_size == 50
        assert config.ledger.high_utilization_threshold == Decimal("80.5")
        assert config.log_format == "json"

    def test_from_env_bad_int(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("POSTGRES_PORT", "not-a-port")
        with pytest.raises(ConfigurationError):
            AppConfig.from_env()

    def test_from_env_bad_decimal(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("LEDGER_SAVINGS_THRESHOLD", "lots")
        with pytest.raises(ConfigurationError):
            AppConfig.from_env()


@pytest.mark.usefixtures("restore_logging")
class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_setup_logging_default(self) -> None:
        setup_logging()
        assert logging.getLogger().level == logging.INFO

    def test_setup_logging_debug(self) -> None:
        setup_logging(level="DEBUG")
        assert logging.getLogger("card_ledger").level == logging.DEBUG

    def test_setup_logging_invalid_level(self) -> None:
        setup_logging(level="INVALID")
        assert logging.getLogger().level == logging.INFO

    def test_setup_logging_json_format(self) -> None:
        setup_logging(format_type="json")
        handlers = logging.getLogger().handlers
        assert len(handlers) == 1
        assert isinstance(handlers[0].formatter, JsonFormatter)

    def test_setup_logging_custom_stream(self) -> None:
        stream = io.StringIO()
        setup_logging(format_type="json", stream=stream)
        logging.getLogger("card_ledger.test").info("hello")
        assert json.loads(stream.getvalue())["message"] == "hello"

    def test_external_loggers_quieted(self) -> None:
        setup_logging(level="DEBUG")
        assert logging.getLogger("confluent_kafka").level == logging.WARNING
        assert logging.getLogger("psycopg").level == logging.WARNING


class TestJsonFormatter:
    """Tests for JsonFormatter."""

    def _record(self, **kwargs) -> logging.LogRecord:
        return logging.LogRecord(
            name="card_ledger.synchronizer",
            level=kwargs.pop("level", logging.INFO),
            pathname="synchronizer.py",
            lineno=1,
            msg="Expense %s charged",
            args=("exp-1",),
            exc_info=kwargs.pop("exc_info", None),
        )

    def test_format_basic(self) -> None:
        data = json.loads(JsonFormatter().format(self._record()))
        assert data["level"] == "INFO"
        assert data["logger"] == "card_ledger.synchronizer"
        assert data["message"] == "Expense exp-1 charged"
        assert "timestamp" in data

    def test_format_with_exception(self) -> None:
        try:
            raise ValueError("boom")
        except ValueError:
            exc_info = sys.exc_info()
        data = json.loads(JsonFormatter().format(self._record(level=logging.ERROR, exc_info=exc_info)))
        assert "ValueError" in data["exception"]

    def test_format_with_extra(self) -> None:
        record = self._record()
        record.extra = {"card_id": "card-1", "balance": Decimal("10.00")}
        data = json.loads(JsonFormatter().format(record))
        assert data["card_id"] == "card-1"
        assert data["balance"] == "10.00"

    def test_format_lifts_ledger_ids(self) -> None:
        record = self._record()
        record.card_id = "card-1"
        record.flow = "create"
        data = json.loads(JsonFormatter().format(record))
        assert data["card_id"] == "card-1"
        assert data["flow"] == "create"
        assert "expense_id" not in data


class TestGetLogger:
    def test_get_logger(self) -> None:
        logger = get_logger("card_ledger.test")
        assert isinstance(logger, logging.Logger)
        assert logger is get_logger("card_ledger.test")
