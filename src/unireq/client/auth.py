"""client/auth.py

Authorization header values for Unireq requests.
"""

import base64


def build_basic_auth_header(username: str, password: str) -> str:
    """
    Build Basic Auth header from username and password.

    Args:
        username: Username for authentication.
        password: Password for authentication.

    Returns:
        Basic Auth header value.
    """
    if ":" in username:
        raise ValueError("Basic auth username must not contain ':'")
    token = f"{username}:{password}".encode("utf-8")
    return "Basic " + base64.b64encode(token).decode("ascii")


def build_bearer_auth_header(token: str) -> str:
    """Build Bearer token header value."""
    if not token:
        raise ValueError("Bearer token must not be empty")
    return f"Bearer {token}"
