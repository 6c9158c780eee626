"""Request utility functions for handling common request operations."""

import ipaddress
import logging

from fastapi import Request

logger = logging.getLogger(__name__)

# Used when neither headers nor the transport expose a peer address
UNKNOWN_CLIENT_ADDRESS = "0.0.0.0"


def _is_valid_ip(ip_str: str) -> bool:
    """Check if a string is a valid IP address."""
    try:
        ipaddress.ip_address(ip_str)
        return True
    except ValueError:
        return False


def get_client_address(
    request: Request,
    trust_forwarded_headers: bool = True,
    trusted_proxy_ips: set[str] | None = None,
) -> str:
    """Get the client address used to key per-client state.

    Priority order:
    1. First entry of X-Forwarded-For
    2. X-Real-IP
    3. Direct client connection

    Forwarded headers are only honoured when ``trust_forwarded_headers`` is
    set. If ``trusted_proxy_ips`` is non-empty they are further restricted
    to requests whose direct peer is one of those proxies, since any client
    can set these headers itself.

    Args:
        request: The FastAPI request object
        trust_forwarded_headers: Whether proxy headers may be used at all
        trusted_proxy_ips: Peers allowed to set proxy headers (empty = any)

    Returns:
        Client address, or UNKNOWN_CLIENT_ADDRESS if none is available
    """
    direct_ip = request.client.host if request.client else None

    headers_trusted = trust_forwarded_headers and (
        not trusted_proxy_ips or (direct_ip is not None and direct_ip in trusted_proxy_ips)
    )

    if headers_trusted:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            client_ip = forwarded.split(",")[0].strip()
            if _is_valid_ip(client_ip):
                return client_ip
            logger.warning(f"Invalid IP in X-Forwarded-For header: {client_ip}")

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            ip = real_ip.strip()
            if _is_valid_ip(ip):
                return ip
            logger.warning(f"Invalid X-Real-IP: {real_ip}")
    elif request.headers.get("X-Forwarded-For"):
        logger.debug(f"Ignoring X-Forwarded-For from untrusted source: {direct_ip}")

    if direct_ip:
        return direct_ip

    return UNKNOWN_CLIENT_ADDRESS
