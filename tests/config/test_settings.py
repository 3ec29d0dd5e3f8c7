"""
Tests for configuration loading and the config -> kernel/engine bridges.

Covers:
- The packaged defaults load and validate
- File selection (argument, LEDGER_CONFIG) and the DATABASE_URL override
- Unknown keys and bad values fail at load time
- Bridges produce working aging buckets, JournalService options and a
  ReportingConfig
"""

from __future__ import annotations

import json
import logging
from io import StringIO

import pytest
import yaml

from ledger_config import DEFAULTS_PATH, load_settings
from ledger_config.bridges import build_aging_buckets, journal_service_options
from ledger_config.loader import compute_checksum, parse_configuration
from ledger_config.schema import BucketSettings, LedgerConfiguration
from ledger_engines.aging import AgingCalculator
from ledger_kernel.logging_config import StructuredFormatter
from ledger_kernel.services.journal_service import JournalService
from ledger_modules.reporting.config import ReportingConfig


def _write(tmp_path, data) -> str:
    path = tmp_path / "ledger.yaml"
    path.write_text(yaml.safe_dump(data))
    return str(path)


class TestDefaults:
    def test_packaged_defaults(self):
        settings = load_settings(environ={})

        assert settings.source == str(DEFAULTS_PATH)
        assert settings.database.url == "sqlite:///:memory:"
        assert settings.ledger.default_currency == "USD"
        assert settings.ledger.enforce_entry_currency is True
        assert settings.reporting.cash_sub_groups == ("cash", "bank")
        assert [b.name for b in settings.aging.buckets] == [
            "current", "0-30", "31-60", "61-90", "90+",
        ]
        assert len(settings.checksum) == 64

    def test_defaults_match_schema_defaults(self):
        settings = load_settings(environ={})
        empty = LedgerConfiguration()
        assert settings.ledger == empty.ledger
        assert settings.reporting == empty.reporting
        assert settings.aging == empty.aging


class TestFileSelection:
    def test_explicit_path(self, tmp_path):
        path = _write(tmp_path, {"ledger": {"default_currency": "eur"}})
        settings = load_settings(path, environ={})
        assert settings.source == path
        assert settings.ledger.default_currency == "EUR"
        # Sections not in the file keep their defaults
        assert settings.reporting.entity_name == "Company"

    def test_env_var_selects_file(self, tmp_path):
        path = _write(tmp_path, {"reporting": {"entity_name": "Acme"}})
        settings = load_settings(environ={"LEDGER_CONFIG": path})
        assert settings.reporting.entity_name == "Acme"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "absent.yaml", environ={})

    def test_empty_file_is_all_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")
        settings = load_settings(path, environ={})
        assert settings.ledger.default_currency == "USD"

    def test_database_url_override(self, tmp_path):
        path = _write(tmp_path, {"database": {"url": "sqlite:///file.db"}})
        settings = load_settings(
            path, environ={"DATABASE_URL": "postgresql://u:p@localhost/ledger"},
        )
        assert settings.database.url == "postgresql://u:p@localhost/ledger"

    def test_config_trace_logged(self):
        stream = StringIO()
        handler = logging.StreamHandler(stream)
        handler.setFormatter(StructuredFormatter())
        logger = logging.getLogger("ledger_kernel.config")
        logger.addHandler(handler)
        try:
            load_settings(environ={"DATABASE_URL": "sqlite:///secret.db"})
        finally:
            logger.removeHandler(handler)

        record = json.loads(stream.getvalue().strip().split("\n")[-1])
        assert record["message"] == "LEDGER_CONFIG_TRACE"
        assert record["database_url_overridden"] is True
        assert record["default_currency"] == "USD"
        assert "secret.db" not in stream.getvalue()


class TestValidation:
    @pytest.mark.parametrize(
        "data, fragment",
        [
            ({"logging": {}}, "sections"),
            ({"ledger": {"currency": "USD"}}, "unknown keys"),
            ({"ledger": {"default_currency": "XXQ"}}, "ISO 4217"),
            ({"ledger": {"enforce_entry_currency": "yes"}}, "enforce_entry_currency"),
            ({"database": {"pool_size": 0}}, "pool_size"),
            ({"database": {"pool_size": "20"}}, "integer"),
            ({"reporting": {"cash_sub_groups": "cash"}}, "list of strings"),
            ({"reporting": {"cash_sub_groups": []}}, "cash_sub_groups"),
            ({"aging": {"buckets": []}}, "non-empty"),
            ({"aging": {"buckets": [{"min_days": 0}]}}, "name"),
        ],
    )
    def test_invalid_documents(self, data, fragment):
        with pytest.raises(ValueError, match=fragment):
            parse_configuration(data)

    def test_checksum_is_order_independent(self):
        first = {"ledger": {"default_currency": "USD", "enforce_entry_currency": True}}
        second = {"ledger": {"enforce_entry_currency": True, "default_currency": "USD"}}
        assert compute_checksum(first) == compute_checksum(second)
        assert compute_checksum(first) != compute_checksum({})

    def test_keywords_lowercased(self):
        settings = parse_configuration({"reporting": {"investing_keywords": ["Plant", "Vehicles"]}})
        assert settings.reporting.investing_keywords == ("plant", "vehicles")


class TestBridges:
    def test_default_aging_buckets(self):
        buckets = build_aging_buckets(load_settings(environ={}))
        calculator = AgingCalculator(buckets)
        assert calculator.classify(45).name == "31-60"
        assert calculator.classify(-3).name == "current"

    def test_custom_aging_buckets(self):
        settings = parse_configuration(
            {
                "aging": {
                    "buckets": [
                        {"name": "not due", "min_days": None, "max_days": 0},
                        {"name": "overdue", "min_days": 1, "max_days": None},
                    ]
                }
            }
        )
        buckets = build_aging_buckets(settings)
        assert [b.name for b in buckets] == ["not due", "overdue"]
        assert settings.aging.buckets[1] == BucketSettings("overdue", 1, None)

    def test_gapped_aging_buckets_rejected(self):
        settings = parse_configuration(
            {
                "aging": {
                    "buckets": [
                        {"name": "early", "min_days": None, "max_days": 10},
                        {"name": "late", "min_days": 20, "max_days": None},
                    ]
                }
            }
        )
        with pytest.raises(ValueError, match="not contiguous"):
            build_aging_buckets(settings)

    def test_journal_service_options(self, session, deterministic_clock):
        settings = parse_configuration({"ledger": {"enforce_entry_currency": False}})
        options = journal_service_options(settings)
        assert options == {"enforce_entry_currency": False}

        service = JournalService(session, deterministic_clock, **options)
        assert service.enforce_entry_currency is False

    def test_reporting_config_from_settings(self):
        settings = parse_configuration(
            {
                "ledger": {"default_currency": "GBP"},
                "reporting": {
                    "entity_name": "Acme",
                    "financing_keywords": ["debenture"],
                },
            },
            source="inline",
        )
        config = ReportingConfig.from_settings(settings)
        assert config.default_currency == "GBP"
        assert config.entity_name == "Acme"
        assert config.classification.financing_keywords == ("debenture",)
        assert config.classification.investing_keywords == ("fixed asset", "equipment")
        assert config.cash_sub_group_set == frozenset({"cash", "bank"})

    def test_reporting_config_from_dict(self):
        config = ReportingConfig.from_dict(
            {"entity_name": "Acme", "classification": {"financing_keywords": ("bond",)}}
        )
        assert config.classification.financing_keywords == ("bond",)

    def test_reporting_config_rejects_bad_currency(self):
        with pytest.raises(ValueError):
            ReportingConfig(default_currency="NOPE")
