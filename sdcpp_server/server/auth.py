"""Bearer token check against the configured shared secret."""

from __future__ import annotations

import hmac

from sdcpp_server.server.errors import Unauthorized

BEARER_PREFIX = "Bearer "


def verify_bearer_token(authorization: str | None, expected_token: str) -> None:
    """Raise Unauthorized unless the header is exactly ``Bearer <expected_token>``."""
    if authorization is not None and authorization.startswith(BEARER_PREFIX):
        supplied = authorization[len(BEARER_PREFIX) :]
        if hmac.compare_digest(supplied.encode(), expected_token.encode()):
            return
    raise Unauthorized("Invalid or missing authorization token")
