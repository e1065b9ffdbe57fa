"""Tests for client IP extraction and user-agent device naming."""

from starlette.requests import Request

from learnpath.core.devices import (
    MAX_IP_LENGTH,
    MAX_USER_AGENT_LENGTH,
    get_client_ip,
    get_device_name,
    get_user_agent,
)

CHROME_MAC = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
SAFARI_IPHONE = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)
FIREFOX_WINDOWS = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0"
)


def _request(headers: dict[str, str] | None = None, client=("10.0.0.9", 5000)) -> Request:
    scope = {
        "type": "http",
        "method": "GET",
        "path": "/",
        "headers": [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        "client": client,
    }
    return Request(scope)


class TestGetClientIp:
    def test_first_forwarded_hop(self):
        req = _request({"X-Forwarded-For": "203.0.113.7, 10.0.0.1, 10.0.0.2"})
        assert get_client_ip(req) == "203.0.113.7"

    def test_real_ip_header(self):
        assert get_client_ip(_request({"X-Real-IP": "198.51.100.4"})) == "198.51.100.4"

    def test_socket_peer(self):
        assert get_client_ip(_request()) == "10.0.0.9"

    def test_unknown(self):
        assert get_client_ip(_request(client=None)) == "unknown"

    def test_oversized_forwarded_header_is_cut_to_column_width(self):
        req = _request({"X-Forwarded-For": "1" * 300 + ", 10.0.0.1"})
        assert get_client_ip(req) == "1" * MAX_IP_LENGTH

    def test_oversized_real_ip_is_cut_to_column_width(self):
        req = _request({"X-Real-IP": "f" * 100})
        assert len(get_client_ip(req)) == MAX_IP_LENGTH


class TestGetUserAgent:
    def test_missing(self):
        assert get_user_agent(_request()) is None

    def test_passes_through_normal_value(self):
        assert get_user_agent(_request({"User-Agent": CHROME_MAC})) == CHROME_MAC

    def test_oversized_value_is_cut_to_column_width(self):
        req = _request({"User-Agent": CHROME_MAC + "x" * 1000})
        ua = get_user_agent(req)
        assert len(ua) == MAX_USER_AGENT_LENGTH
        assert ua.startswith(CHROME_MAC)


class TestGetDeviceName:
    def test_missing_user_agent(self):
        assert get_device_name(None) == "Unknown Device"
        assert get_device_name("") == "Unknown Device"

    def test_desktop_browser_on_os(self):
        assert get_device_name(CHROME_MAC) == "Chrome on Mac OS X"
        assert get_device_name(FIREFOX_WINDOWS) == "Firefox on Windows"

    def test_mobile_names_device(self):
        name = get_device_name(SAFARI_IPHONE)
        assert name.startswith("Mobile Safari on ")
        assert "iPhone" in name
