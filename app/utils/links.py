"""Referral code generation and link building."""

import secrets
from urllib.parse import urlencode

from app.config import ReferralConfig


def generate_referral_code(length: int, alphabet: str) -> str:
    """
    Draw a referral code uniformly at random from ``alphabet``.

    Args:
        length: Number of characters
        alphabet: Characters to draw from

    Returns:
        Random code string
    """
    return "".join(secrets.choice(alphabet) for _ in range(length))


def build_signup_url(config: ReferralConfig, code: str | None = None) -> str:
    """
    Build the frontend signup URL, optionally carrying ``?ref=<code>``.

    Examples:
        https://app.example.com + /signup, "abc"  → https://app.example.com/signup?ref=abc
        https://app.example.com + /signup, None   → https://app.example.com/signup
    """
    origin = config.frontend_origin.rstrip("/")
    path = "/" + config.frontend_signup_path.lstrip("/")
    url = f"{origin}{path}"
    if code:
        url = f"{url}?{urlencode({'ref': code})}"
    return url


def build_referral_link(config: ReferralConfig, code: str) -> str:
    """
    Build the shareable referral link for ``code``.

    ``path`` style points at this service's redirect hop (server-side
    attribution); ``query`` style points straight at the frontend signup
    page, which reports the click itself.
    """
    if config.link_style == "query":
        return build_signup_url(config, code)
    return f"{config.backend_base_url.rstrip('/')}/r/{code}"
