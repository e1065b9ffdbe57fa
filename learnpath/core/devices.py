"""Client metadata helpers: originating IP and a readable device label."""

from fastapi import Request
from user_agents import parse as parse_user_agent

UNKNOWN_DEVICE = "Unknown Device"

# Widths of the ip_address, user_agent and device_name columns
MAX_IP_LENGTH = 45
MAX_USER_AGENT_LENGTH = 512
MAX_DEVICE_NAME_LENGTH = 255


def get_client_ip(request: Request) -> str:
    """First hop of X-Forwarded-For, then X-Real-IP, then the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first[:MAX_IP_LENGTH]

    real_ip = request.headers.get("x-real-ip")
    if real_ip and real_ip.strip():
        return real_ip.strip()[:MAX_IP_LENGTH]

    if request.client and request.client.host:
        return request.client.host[:MAX_IP_LENGTH]
    return "unknown"


def get_user_agent(request: Request) -> str | None:
    user_agent = request.headers.get("user-agent")
    if user_agent is None:
        return None
    return user_agent[:MAX_USER_AGENT_LENGTH]


def _known(family: str | None) -> str | None:
    if not family or family == "Other":
        return None
    return family


def get_device_name(user_agent: str | None) -> str:
    """
    Human-readable device name, e.g. ``"Chrome on Mac OS X"`` or
    ``"Mobile Safari on Apple iPhone"``.
    """
    if not user_agent:
        return UNKNOWN_DEVICE

    ua = parse_user_agent(user_agent)
    browser = _known(ua.browser.family) or "Unknown Browser"

    if ua.is_mobile or ua.is_tablet:
        vendor = _known(ua.device.brand) or ""
        model = _known(ua.device.model) or ("Tablet" if ua.is_tablet else "Mobile")
        name = f"{browser} on {vendor} {model}".replace("  ", " ").strip()
    else:
        os_name = _known(ua.os.family) or "Unknown OS"
        name = f"{browser} on {os_name}"
    return name[:MAX_DEVICE_NAME_LENGTH]
