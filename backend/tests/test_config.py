"""
TrackCode Backend — Settings Validation Tests
"""

import pytest
from pydantic import ValidationError

from trackcode.config import Settings


class TestSettings:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("PREFIX_RETRY_MIN_WAIT", raising=False)
        settings = Settings(_env_file=None)

        assert settings.sequence_padding == 5
        assert settings.fallback_prefix == "CLI"
        assert settings.prefix_exhaustion_policy == "timestamp"
        assert settings.prefix_claim_max_attempts == 3

    def test_values_are_normalized(self):
        settings = Settings(
            _env_file=None,
            fallback_prefix="cx",
            prefix_exhaustion_policy="ERROR",
            log_level="debug",
        )

        assert settings.fallback_prefix == "CX"
        assert settings.prefix_exhaustion_policy == "error"
        assert settings.log_level == "DEBUG"

    @pytest.mark.parametrize(
        "field, value",
        [
            ("prefix_exhaustion_policy", "random"),
            ("fallback_prefix", "C1"),
            ("log_level", "VERBOSE"),
            ("sequence_padding", 0),
        ],
    )
    def test_invalid_values_are_rejected(self, field, value):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **{field: value})

    def test_sqlite_detection_and_cors_split(self):
        settings = Settings(
            _env_file=None,
            database_url="sqlite+aiosqlite:///dev.db",
            cors_origins="http://a.test, http://b.test",
        )

        assert settings.is_sqlite is True
        assert settings.cors_origins_list == ["http://a.test", "http://b.test"]
