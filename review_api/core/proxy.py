"""Client address resolution behind reverse proxies.

Each proxy in front of the service appends the address it received the
request from to ``X-Forwarded-For``. Only the last ``trusted_hops`` entries
were written by proxies we control; anything further left is whatever the
client sent and can be spoofed. The client address is therefore the entry
``trusted_hops`` positions left of the socket peer.
"""

from __future__ import annotations

from fastapi import Request, Response

UNKNOWN_ADDRESS = "unknown"


def resolve_client_address(
    socket_address: str | None,
    forwarded_for: str | None,
    trusted_hops: int,
) -> str:
    """Pick the client address from the socket peer and X-Forwarded-For.

    Args:
        socket_address: Address of the direct TCP peer, if known.
        forwarded_for: Raw X-Forwarded-For header value, if present.
        trusted_hops: Number of proxies whose entries are trusted; 0 ignores
            the header entirely.

    Returns:
        The resolved client address.

    Examples:
        >>> resolve_client_address("10.0.0.1", "1.1.1.1, 2.2.2.2", 1)
        '2.2.2.2'
        >>> resolve_client_address("10.0.0.1", "1.1.1.1, 2.2.2.2", 0)
        '10.0.0.1'
        >>> resolve_client_address("10.0.0.1", "1.1.1.1", 5)
        '1.1.1.1'
    """
    if trusted_hops < 0:
        raise ValueError("trusted_hops must be >= 0")

    chain: list[str] = []
    if forwarded_for:
        chain = [hop.strip() for hop in forwarded_for.split(",") if hop.strip()]
    chain.append(socket_address or UNKNOWN_ADDRESS)

    index = max(0, len(chain) - 1 - trusted_hops)
    return chain[index]


async def client_address_middleware(request: Request, call_next) -> Response:
    """Store the resolved client address on ``request.state.client_ip``."""

    trusted_hops = request.app.state.settings.app.trusted_proxy_hops
    socket_address = request.client.host if request.client else None
    request.state.client_ip = resolve_client_address(
        socket_address,
        request.headers.get("x-forwarded-for"),
        trusted_hops,
    )
    return await call_next(request)
