from __future__ import annotations

import httpx
import pytest

from ollama_client import DEFAULT_BASE_URL, ClientConfig, RetryPolicy, Timeouts
from ollama_client.config import normalize_base_url


def test_defaults():
    config = ClientConfig()
    assert config.base_url == DEFAULT_BASE_URL
    assert config.timeouts == Timeouts(connect=60.0, read=120.0, total=600.0)
    assert config.retry == RetryPolicy(max_attempts=3, initial_delay=0.5, backoff_factor=2.0)
    assert config.headers == {}


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("http://localhost:11434/", "http://localhost:11434"),
        ("localhost", "http://localhost:11434"),
        ("0.0.0.0:8080", "http://0.0.0.0:8080"),
        ("https://ollama.example.com", "https://ollama.example.com"),
        ("gpu-box/ollama//", "http://gpu-box:11434/ollama"),
    ],
)
def test_base_url_normalization(raw, expected):
    assert normalize_base_url(raw) == expected
    assert ClientConfig(base_url=raw).base_url == expected


def test_empty_base_url_is_rejected():
    with pytest.raises(ValueError):
        ClientConfig(base_url="  ")


def test_from_env_reads_every_variable():
    config = ClientConfig.from_env(
        {
            "OLLAMA_HOST": "gpu-box:11500",
            "OLLAMA_CONNECT_TIMEOUT": "5",
            "OLLAMA_READ_TIMEOUT": "30.5",
            "OLLAMA_TOTAL_TIMEOUT": "90",
            "OLLAMA_MAX_RETRIES": "5",
            "OLLAMA_RETRY_DELAY": "0.25",
            "OLLAMA_RETRY_BACKOFF": "3",
        }
    )

    assert config.base_url == "http://gpu-box:11500"
    assert config.timeouts == Timeouts(connect=5.0, read=30.5, total=90.0)
    assert config.retry == RetryPolicy(max_attempts=6, initial_delay=0.25, backoff_factor=3.0)


@pytest.mark.parametrize(("retries", "attempts"), [("0", 1), ("2", 3)])
def test_max_retries_counts_attempts_after_the_first(retries, attempts):
    config = ClientConfig.from_env({"OLLAMA_MAX_RETRIES": retries})
    assert config.retry.max_attempts == attempts


def test_from_env_keeps_defaults_for_missing_values():
    config = ClientConfig.from_env({"OLLAMA_READ_TIMEOUT": " "})
    assert config == ClientConfig()


def test_from_env_names_the_bad_variable():
    with pytest.raises(ValueError, match="OLLAMA_CONNECT_TIMEOUT"):
        ClientConfig.from_env({"OLLAMA_CONNECT_TIMEOUT": "soon"})


def test_timeouts_are_validated_and_converted():
    with pytest.raises(ValueError):
        Timeouts(connect=0)

    timeout = Timeouts(connect=2.0, read=8.0, total=None).to_httpx()
    assert isinstance(timeout, httpx.Timeout)
    assert timeout.connect == 2.0
    assert timeout.read == 8.0


def test_pool_limits():
    limits = ClientConfig(max_connections=4, max_keepalive_connections=2).limits()
    assert limits.max_connections == 4
    assert limits.max_keepalive_connections == 2
