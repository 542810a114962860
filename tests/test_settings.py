"""
Tests for environment-driven settings and the entry point's argument parsing.
"""

import pytest

from main import parse_args
from substance_lookup.settings import Settings


class TestSettings:
    def test_defaults(self):
        settings = Settings()
        assert settings.enable_psychonautwiki is True
        assert settings.cache_ttl_minutes == 60
        assert settings.error_threshold == 5
        assert settings.error_reset_minutes == 5
        assert settings.max_retries == 3

    def test_reads_environment_names(self):
        settings = Settings.model_validate(
            {
                "ENABLE_TRIPSIT": "false",
                "CACHE_TTL_MINUTES": "10",
                "RETRY_BASE_DELAY": "0.5",
                "UNRELATED_VARIABLE": "ignored",
            }
        )
        assert settings.enable_tripsit is False
        assert settings.cache_ttl_minutes == 10
        assert settings.retry_base_delay == 0.5


class TestParseArgs:
    def test_names_and_default_source(self):
        args = parse_args(["LSD", "Molly"])
        assert args.names == ["LSD", "Molly"]
        assert args.source == "all"

    def test_source_choice(self):
        assert parse_args(["LSD", "--source", "tripsit"]).source == "tripsit"

    def test_requires_a_name(self):
        with pytest.raises(SystemExit):
            parse_args([])
