"""Unit tests for core/config.py -- JWT_SECRET policy and duration parsing.

Settings are always built with explicit keyword arguments and _env_file=None
so the developer's shell environment cannot leak into the assertions.
"""

import pytest
from pydantic import ValidationError

from core.config import INSECURE_DEFAULT_SECRET, get_settings, parse_duration
from tests.conftest import TEST_SECRET, make_settings


class TestSecretPolicy:
    def test_missing_secret_in_production_refuses_to_start(self) -> None:
        with pytest.raises(ValidationError, match="JWT_SECRET is required"):
            make_settings(jwt_secret="", debug=False)

    def test_missing_secret_in_debug_generates_one(self) -> None:
        s = make_settings(jwt_secret="", debug=True)
        assert len(s.jwt_secret) == 64

    def test_generated_debug_secrets_differ(self) -> None:
        a = make_settings(jwt_secret="", debug=True)
        b = make_settings(jwt_secret="", debug=True)
        assert a.jwt_secret != b.jwt_secret

    @pytest.mark.parametrize("debug", [False, True])
    def test_insecure_sample_secret_rejected_in_every_mode(self, debug: bool) -> None:
        with pytest.raises(ValidationError, match="insecure sample value"):
            make_settings(jwt_secret=INSECURE_DEFAULT_SECRET, debug=debug)

    def test_short_secret_rejected(self) -> None:
        with pytest.raises(ValidationError, match="at least 32 characters"):
            make_settings(jwt_secret="too-short")

    def test_valid_secret_kept(self) -> None:
        assert make_settings().jwt_secret == TEST_SECRET

    def test_get_settings_reads_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("JWT_SECRET", "e" * 40)
        monkeypatch.setenv("JWT_EXPIRE", "12h")
        get_settings.cache_clear()
        try:
            s = get_settings()
            assert s.jwt_secret == "e" * 40
            assert s.token_ttl_seconds == 12 * 3600
            assert get_settings() is s
        finally:
            get_settings.cache_clear()


class TestDefaults:
    def test_default_token_lifetime_is_seven_days(self) -> None:
        s = make_settings(jwt_expire="7d")
        assert s.token_ttl_seconds == 7 * 86400

    def test_totp_defaults(self) -> None:
        s = make_settings()
        assert s.totp_issuer == "SMS Verification System"
        assert s.totp_valid_window == 2

    def test_negative_totp_window_rejected(self) -> None:
        with pytest.raises(ValidationError):
            make_settings(totp_valid_window=-1)

    def test_unparseable_expiry_rejected(self) -> None:
        with pytest.raises(ValidationError):
            make_settings(jwt_expire="forever")


class TestParseDuration:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("7d", 604800),
            ("12h", 43200),
            ("30m", 1800),
            ("45s", 45),
            ("2w", 1209600),
            ("1 day", 86400),
            ("2.5h", 9000),
            ("90", 90),
            (3600, 3600),
        ],
    )
    def test_valid(self, value, expected) -> None:
        assert parse_duration(value) == expected

    @pytest.mark.parametrize("value", ["", "abc", "7 parsecs", "-1d", "0s", "500ms", 0, True])
    def test_invalid(self, value) -> None:
        with pytest.raises(ValueError):
            parse_duration(value)
