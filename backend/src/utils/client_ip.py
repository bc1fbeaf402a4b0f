"""
Client IP extraction utility.

Used to key failed-credential tracking per client address. Requests that
come through a reverse proxy (nginx, a platform load balancer) carry the
original address in X-Forwarded-For.
"""

from fastapi import Request


def get_client_ip(request: Request) -> str:
    """
    Extract the client IP address from a request.

    Args:
        request: FastAPI/Starlette Request object

    Returns:
        The first X-Forwarded-For entry when present, otherwise the direct
        peer address, or "unknown" if neither is available
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()
    return request.client.host if request.client else "unknown"
