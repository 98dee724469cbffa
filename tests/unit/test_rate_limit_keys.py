import pytest
from starlette.requests import Request

from app.core import config
from app.core.rate_limit import rate_limit_api_key_or_ip_key, rate_limit_ip_key

CONFIGURED_KEY = "configured-ingest-key-0123456789abcdef"


@pytest.fixture(autouse=True)
def configured_key(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(config.settings, "ingest_api_key", CONFIGURED_KEY)


def _request(headers: dict[str, str] | None = None, ip: str = "10.0.0.9") -> Request:
    raw_headers = [(k.encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request(
        {
            "type": "http",
            "method": "POST",
            "path": "/",
            "headers": raw_headers,
            "client": (ip, 5555),
        }
    )


def test_ip_key() -> None:
    assert rate_limit_ip_key(_request()) == "ip:10.0.0.9"


def test_api_key_bucket_never_contains_the_raw_key() -> None:
    key = rate_limit_api_key_or_ip_key(_request({"x-api-key": CONFIGURED_KEY}))
    assert key.startswith("key:")
    assert CONFIGURED_KEY not in key
    assert len(key) == len("key:") + 16


def test_configured_key_shares_a_bucket_across_ips() -> None:
    first = rate_limit_api_key_or_ip_key(_request({"x-api-key": CONFIGURED_KEY}, ip="10.0.0.1"))
    second = rate_limit_api_key_or_ip_key(_request({"x-api-key": CONFIGURED_KEY}, ip="10.0.0.2"))
    assert first == second


def test_unknown_keys_fall_back_to_the_caller_ip() -> None:
    keys = {
        rate_limit_api_key_or_ip_key(_request({"x-api-key": f"guess-{n}"})) for n in range(5)
    }
    assert keys == {"ip:10.0.0.9"}


def test_falls_back_to_ip_without_api_key() -> None:
    assert rate_limit_api_key_or_ip_key(_request()) == "ip:10.0.0.9"
