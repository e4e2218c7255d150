"""Company email allow-list helpers."""

from typing import Iterable, Optional

from app.core.config import settings


def normalize_email(email: Optional[str]) -> str:
    return str(email or "").strip().lower()


def email_local_part(email: str) -> str:
    """Display name derived from an email: everything before the '@'."""
    return str(email or "").split("@")[0]


def is_allowed_company_email(email: str, allowed_domains: Optional[Iterable[str]] = None) -> bool:
    normalized = normalize_email(email)
    at_index = normalized.rfind("@")
    if at_index <= 0:
        return False
    domains = allowed_domains if allowed_domains is not None else settings.ALLOWED_EMAIL_DOMAINS
    domain = normalized[at_index + 1:]
    return domain in {d.lower() for d in domains}


def company_email_error(allowed_domains: Optional[Iterable[str]] = None) -> str:
    domains = allowed_domains if allowed_domains is not None else settings.ALLOWED_EMAIL_DOMAINS
    return "Email must use " + " or ".join(f"@{d}" for d in domains)
