from __future__ import annotations

import logging
import unicodedata
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional

from .models import ContactRecord

logger = logging.getLogger(__name__)

GMAIL_DOMAINS = {"gmail.com", "googlemail.com"}

# Checked in order; the first match is stripped.
ORGANIZATION_SUFFIXES = (
    " inc",
    " inc.",
    " incorporated",
    " llc",
    " l.l.c.",
    " l.l.c",
    " corp",
    " corp.",
    " corporation",
    " ltd",
    " ltd.",
    " limited",
    " co",
    " co.",
    " company",
    " plc",
    " plc.",
)


def _strip_punctuation(text: str) -> str:
    return "".join(ch for ch in text if not unicodedata.category(ch).startswith("P"))


def normalize_name(name: Optional[str]) -> str:
    """
    Lower-case, strip punctuation and collapse whitespace.

    Names with more than two tokens lose their single-letter tokens, which are
    treated as middle initials ("John Q Public" -> "john public").
    """
    if not name:
        return ""
    tokens = _strip_punctuation(name.lower()).split()
    if len(tokens) > 2:
        tokens = [token for token in tokens if len(token) > 1]
    return " ".join(tokens)


def normalize_full_name(
    given: Optional[str], middle: Optional[str], family: Optional[str]
) -> str:
    parts = (normalize_name(part) for part in (given, middle, family))
    return " ".join(part for part in parts if part)


def normalize_email(email: Optional[str]) -> str:
    if not email:
        return ""
    normalized = email.strip().lower()
    local, at, domain = normalized.partition("@")
    if at and domain in GMAIL_DOMAINS:
        return f"{local.replace('.', '')}@{domain}"
    return normalized


def normalize_emails(values: Iterable[Optional[str]]) -> FrozenSet[str]:
    return frozenset(filter(None, (normalize_email(value) for value in values)))


def email_domain(email: Optional[str]) -> str:
    """Lower-cased text after the '@', or '' when the value is not an address."""
    if not email:
        return ""
    parts = email.split("@")
    if len(parts) != 2:
        return ""
    return parts[1].strip().lower()


def normalize_phone(phone: Optional[str]) -> str:
    """Digits only, keeping a '+' that comes before any digit: '+1 (555) 123-4567' -> '+15551234567'."""
    if not phone:
        return ""
    out = []
    for ch in phone:
        if ch == "+" and not out:
            out.append(ch)
        elif ch.isdigit():
            out.append(ch)
    normalized = "".join(out)
    if not normalized.lstrip("+"):
        return ""
    return normalized


def normalize_phones(values: Iterable[Optional[str]]) -> FrozenSet[str]:
    return frozenset(filter(None, (normalize_phone(value) for value in values)))


def normalize_organization(org: Optional[str]) -> str:
    if not org:
        return ""
    normalized = org.strip().lower()
    for suffix in ORGANIZATION_SUFFIXES:
        if normalized.endswith(suffix):
            normalized = normalized[: -len(suffix)]
            break
    return normalized.strip()


def normalize_address(
    street: Optional[str] = None,
    city: Optional[str] = None,
    region: Optional[str] = None,
    postal: Optional[str] = None,
    country: Optional[str] = None,
) -> str:
    parts = ((part or "").strip().lower() for part in (street, city, region, postal, country))
    return " ".join(part for part in parts if part)


def levenshtein(a: str, b: str) -> int:
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    previous = list(range(len(b) + 1))
    for i, ch_a in enumerate(a, start=1):
        current = [i]
        for j, ch_b in enumerate(b, start=1):
            cost = 0 if ch_a == ch_b else 1
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + cost,
                )
            )
        previous = current
    return previous[-1]


def names_similar(a: Optional[str], b: Optional[str], max_distance: int = 2) -> bool:
    n1 = normalize_name(a)
    n2 = normalize_name(b)
    if not n1 or not n2:
        return False
    if n1 == n2:
        return True
    return levenshtein(n1, n2) <= max_distance


@dataclass(frozen=True)
class NormalizedView:
    full_name: str = ""
    given_name: str = ""
    family_name: str = ""
    emails: FrozenSet[str] = frozenset()
    phones: FrozenSet[str] = frozenset()
    organization: str = ""
    address: str = ""

    @property
    def is_empty(self) -> bool:
        return not (self.full_name or self.emails or self.phones)

    @property
    def has_name(self) -> bool:
        return bool(self.full_name)

    @property
    def has_contact(self) -> bool:
        return bool(self.emails or self.phones)


def normalized_view(record: ContactRecord) -> NormalizedView:
    first_address = record.addresses[0] if record.addresses else None
    address = ""
    if first_address is not None:
        address = normalize_address(
            first_address.street,
            first_address.city,
            first_address.region,
            first_address.postal_code,
            first_address.country,
        )
    view = NormalizedView(
        full_name=normalize_full_name(record.given_name, record.middle_name, record.family_name),
        given_name=normalize_name(record.given_name),
        family_name=normalize_name(record.family_name),
        emails=normalize_emails(email.value for email in record.emails),
        phones=normalize_phones(phone.value for phone in record.phones),
        organization=normalize_organization(record.organization),
        address=address,
    )
    if view.is_empty:
        logger.debug("Record %s has no name, email or phone to match on", record.id)
    return view
