import pytest

from resilient_stomp.config import ConfigurationError, env_bool, env_float, env_int, env_str


def test_env_str_returns_stripped_value(monkeypatch):
    monkeypatch.setenv("STOMP_TEST_VALUE", "  ws://broker  ")

    assert env_str("STOMP_TEST_VALUE") == "ws://broker"


def test_env_str_blank_counts_as_unset(monkeypatch):
    monkeypatch.setenv("STOMP_TEST_VALUE", "   ")

    assert env_str("STOMP_TEST_VALUE", or_value="fallback") == "fallback"


def test_env_str_required_missing_raises():
    with pytest.raises(ConfigurationError, match="STOMP_TEST_VALUE is missing or empty"):
        env_str("STOMP_TEST_VALUE", required=True)


def test_env_int_parses_and_defaults(monkeypatch):
    assert env_int("STOMP_TEST_INT", or_value=7) == 7
    monkeypatch.setenv("STOMP_TEST_INT", "12")
    assert env_int("STOMP_TEST_INT", or_value=7) == 12


def test_env_int_rejects_garbage(monkeypatch):
    monkeypatch.setenv("STOMP_TEST_INT", "twelve")

    with pytest.raises(ConfigurationError, match="an integer"):
        env_int("STOMP_TEST_INT")


def test_env_float_parses(monkeypatch):
    monkeypatch.setenv("STOMP_TEST_FLOAT", "0.25")

    assert env_float("STOMP_TEST_FLOAT") == 0.25


def test_env_float_required_without_default_raises():
    with pytest.raises(ConfigurationError):
        env_float("STOMP_TEST_FLOAT", required=True)


@pytest.mark.parametrize("raw,expected", [("1", True), ("Yes", True), ("on", True), ("0", False), ("off", False)])
def test_env_bool_accepts_common_spellings(monkeypatch, raw, expected):
    monkeypatch.setenv("STOMP_TEST_BOOL", raw)

    assert env_bool("STOMP_TEST_BOOL") is expected


def test_env_bool_rejects_unknown_spelling(monkeypatch):
    monkeypatch.setenv("STOMP_TEST_BOOL", "maybe")

    with pytest.raises(ConfigurationError, match="invalid format"):
        env_bool("STOMP_TEST_BOOL")


def test_configuration_error_messages():
    assert str(ConfigurationError.invalid_value("max_delay", -1, "Must be non-negative")) == (
        "Invalid value for max_delay: -1. Must be non-negative"
    )
    assert str(ConfigurationError.missing_value("endpoint")) == "endpoint is missing or empty"
