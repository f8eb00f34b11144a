"""
Account keys.

An account key is a normalised company domain: lower-case, no protocol,
no path, no leading "www.". Personal / free-mail domains never become
accounts and never receive intent.
"""
from __future__ import annotations

import re
from typing import Optional
from urllib.parse import urlsplit

PERSONAL_DOMAINS: frozenset[str] = frozenset({
    "gmail.com",
    "googlemail.com",
    "yahoo.com",
    "yahoo.co.uk",
    "hotmail.com",
    "hotmail.co.uk",
    "outlook.com",
    "live.com",
    "msn.com",
    "icloud.com",
    "me.com",
    "mac.com",
    "aol.com",
    "protonmail.com",
    "proton.me",
    "mail.com",
    "zoho.com",
    "yandex.com",
    "gmx.com",
    "gmx.net",
    "fastmail.com",
    "tutanota.com",
    "mailfence.com",
    "hey.com",
})


def _safe_lower(value) -> str:
    return value.strip().lower() if isinstance(value, str) else ""


def is_personal_domain(domain_or_email: Optional[str]) -> bool:
    s = _safe_lower(domain_or_email)
    if not s:
        return False
    domain = s.split("@", 1)[1] if "@" in s else s
    return domain in PERSONAL_DOMAINS


def normalize_account_key(raw) -> str:
    """
    Key used to group events; empty string means "no account".

    Group keys sometimes arrive as a website URL or a contact e-mail rather
    than a bare domain; both are reduced to the company domain.
    """
    if raw is None:
        return ""
    s = str(raw).strip().lower()
    if "@" in s:
        return resolve_account_key(work_email=s) or ""
    if "/" in s or s.startswith("www."):
        return resolve_account_key(organization_website=s) or ""
    return s


def normalize_domain_from_url(url: Optional[str]) -> Optional[str]:
    s = _safe_lower(url)
    if not s:
        return None
    with_proto = s if s.startswith("http") else f"https://{s}"
    try:
        host = urlsplit(with_proto).hostname or ""
    except ValueError:
        return None
    host = re.sub(r"^www\.", "", host)
    return host or None


def normalize_domain_from_email(email: Optional[str]) -> Optional[str]:
    e = _safe_lower(email)
    if "@" not in e:
        return None
    domain = e.split("@", 1)[1]
    if not domain or domain in PERSONAL_DOMAINS:
        return None
    return domain


def resolve_account_key(organization_website: Optional[str] = None, work_email: Optional[str] = None) -> Optional[str]:
    """Website domain first, then work e-mail domain."""
    from_url = normalize_domain_from_url(organization_website)
    if from_url and from_url not in PERSONAL_DOMAINS:
        return from_url
    return normalize_domain_from_email(work_email)


def account_name_from_domain(domain: str) -> str:
    """'acme.space.com' -> 'acme space'"""
    return re.sub(r"\.[^.]+$", "", domain).replace(".", " ")
