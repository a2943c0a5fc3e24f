import logging

import pytest

import config


def test_defaults_when_unset():
    assert config.get_request_timeout() == config.DEFAULT_TIMEOUT_SECONDS
    assert config.get_max_concurrent() == config.DEFAULT_MAX_CONCURRENT


def test_valid_overrides(monkeypatch):
    monkeypatch.setenv("IMAGEN3_MCP_TIMEOUT", "2.5")
    monkeypatch.setenv("IMAGEN3_MCP_MAX_CONCURRENT", "4")

    assert config.get_request_timeout() == 2.5
    assert config.get_max_concurrent() == 4


@pytest.mark.parametrize("raw", ["abc", "-3", "0"])
def test_invalid_timeout_falls_back_with_warning(monkeypatch, caplog, raw):
    monkeypatch.setenv("IMAGEN3_MCP_TIMEOUT", raw)

    with caplog.at_level(logging.WARNING, logger="config"):
        assert config.get_request_timeout() == config.DEFAULT_TIMEOUT_SECONDS

    assert "IMAGEN3_MCP_TIMEOUT" in caplog.text


@pytest.mark.parametrize("raw", ["abc", "-3", "0", "1.5"])
def test_invalid_max_concurrent_falls_back_with_warning(monkeypatch, caplog, raw):
    monkeypatch.setenv("IMAGEN3_MCP_MAX_CONCURRENT", raw)

    with caplog.at_level(logging.WARNING, logger="config"):
        assert config.get_max_concurrent() == config.DEFAULT_MAX_CONCURRENT

    assert "IMAGEN3_MCP_MAX_CONCURRENT" in caplog.text
