"""
Utility for formatting session tokens for display in logs.

Tokens are bearer secrets, so logs only ever show a short suffix that is
enough to tell two tokens apart.
"""

from typing import Optional


def format_token_for_display(token: Optional[str]) -> str:
    """
    Format a token for display in logs.

    Args:
        token: The access or refresh token, or None

    Returns:
        A display-safe string representation of the token

    Examples:
        >>> format_token_for_display("eyJhbGciOiJIUzI1NiJ9.payload.sig123456")
        "...123456"
        >>> format_token_for_display(None)
        "<none>"
    """
    if not token:
        return "<none>"
    if len(token) <= 6:
        return "..."
    return f"...{token[-6:]}"
