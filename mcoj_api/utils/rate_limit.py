"""
Rate limiting for the admin login endpoint, using slowapi.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request


def get_client_identifier(request: Request) -> str:
    """
    Client IP for rate limiting: the first X-Forwarded-For hop when the API
    runs behind a proxy, otherwise the socket peer address.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    return get_remote_address(request)


limiter = Limiter(
    key_func=get_client_identifier,
    storage_uri="memory://"  # Single process; per-instance counters are acceptable
)


RATE_LIMITS = {
    "login": "5/minute",  # Brute-force guard on the admin password
}
