"""
Email address helpers: validation, normalization, and business/personal
classification used to decide which contacts get company research.

Everything here is pure and synchronous.
"""

import re
from dataclasses import dataclass

# Free / consumer mailbox providers. Extend here, not in the logic below.
PERSONAL_EMAIL_DOMAINS: frozenset[str] = frozenset(
    {
        # Google
        "gmail.com",
        "googlemail.com",
        # Microsoft
        "outlook.com",
        "hotmail.com",
        "live.com",
        "msn.com",
        "passport.com",
        # Yahoo
        "yahoo.com",
        "yahoo.co.uk",
        "yahoo.ca",
        "yahoo.com.au",
        "yahoo.co.in",
        "yahoo.fr",
        "yahoo.de",
        "yahoo.es",
        "yahoo.it",
        "yahoo.co.jp",
        "ymail.com",
        "rocketmail.com",
        # Apple
        "icloud.com",
        "me.com",
        "mac.com",
        # AOL
        "aol.com",
        "aim.com",
        # Proton
        "protonmail.com",
        "proton.me",
        "pm.me",
        # Other webmail
        "zoho.com",
        "mail.com",
        "gmx.com",
        "gmx.net",
        "gmx.de",
        "web.de",
        "inbox.com",
        "fastmail.com",
        "fastmail.fm",
        "tutanota.com",
        "tutanota.de",
        "yandex.com",
        "yandex.ru",
        "mail.ru",
        "rambler.ru",
        # ISP mailboxes
        "comcast.net",
        "verizon.net",
        "att.net",
        "sbcglobal.net",
        "bellsouth.net",
        "cox.net",
        "charter.net",
        "earthlink.net",
        "juno.com",
        "netzero.net",
        "btinternet.com",
        "sky.com",
        "virginmedia.com",
        "ntlworld.com",
        "talktalk.net",
        "orange.fr",
        "wanadoo.fr",
        "free.fr",
        "t-online.de",
        "arcor.de",
        # Disposable
        "tempmail.com",
        "guerrillamail.com",
        "mailinator.com",
        "10minutemail.com",
        "throwaway.email",
        "sharklasers.com",
        "trashmail.com",
    }
)

EDUCATION_SUFFIXES: tuple[str, ...] = (".edu", ".edu.au", ".ac.uk")
GOVERNMENT_SUFFIXES: tuple[str, ...] = (".gov", ".gov.uk", ".gov.au")

_DOMAIN_RE = re.compile(r"^[a-z0-9]([a-z0-9-]*[a-z0-9])?(\.[a-z0-9]([a-z0-9-]*[a-z0-9])?)+$")

# RFC 5322, simplified
_EMAIL_RE = re.compile(
    r"^[a-zA-Z0-9.!#$%&'*+/=?^_`{|}~-]+@[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?"
    r"(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)+$"
)


@dataclass(slots=True, frozen=True)
class EmailClassification:
    """
    Result of classifying an address.

    domain is None when the address cannot be classified at all, which
    callers must treat differently from a valid personal address.
    """

    is_business: bool
    domain: str | None

    @property
    def is_valid(self) -> bool:
        return self.domain is not None


def extract_domain(email: str | None) -> str | None:
    """
    Extract the lower-cased domain after the last "@".

    Returns None for malformed input: no "@", "@" first or last, a domain
    without a dot, or characters outside the allowed domain alphabet.
    """
    if not email or not isinstance(email, str):
        return None

    trimmed = email.strip().lower()
    at_index = trimmed.rfind("@")
    if at_index <= 0 or at_index == len(trimmed) - 1:
        return None

    domain = trimmed[at_index + 1 :]
    if "." not in domain:
        return None
    if not _DOMAIN_RE.match(domain):
        return None

    return domain


def is_personal_domain(domain: str) -> bool:
    domain = domain.strip().lower()
    if domain in PERSONAL_EMAIL_DOMAINS:
        return True
    if domain.endswith(EDUCATION_SUFFIXES):
        return True
    return domain.endswith(GOVERNMENT_SUFFIXES)


def classify(email: str | None) -> EmailClassification:
    """Classify an address as business or personal and return its domain."""
    domain = extract_domain(email)
    if domain is None:
        return EmailClassification(is_business=False, domain=None)
    return EmailClassification(is_business=not is_personal_domain(domain), domain=domain)


def is_business_email(email: str | None) -> bool:
    return classify(email).is_business


def is_valid_email(email: str | None) -> bool:
    if not email or not isinstance(email, str):
        return False
    return bool(_EMAIL_RE.match(email.strip()))


def normalize_email(email: str | None) -> str | None:
    """Lower-cased, trimmed address, or None when the format is invalid."""
    if not is_valid_email(email):
        return None
    return email.strip().lower()
