from __future__ import annotations

import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


def _label(payload: Dict[str, Any]) -> Optional[str]:
    return _opt_str(payload.get("label"))


@dataclass(frozen=True)
class Email:
    value: str
    label: Optional[str] = None

    @staticmethod
    def from_mapping(payload: Dict[str, Any]) -> "Email":
        return Email(value=str(payload.get("value", "") or ""), label=_label(payload))

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"value": self.value, "label": self.label}


@dataclass(frozen=True)
class Phone:
    value: str
    label: Optional[str] = None

    @staticmethod
    def from_mapping(payload: Dict[str, Any]) -> "Phone":
        return Phone(value=str(payload.get("value", "") or ""), label=_label(payload))

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"value": self.value, "label": self.label}


@dataclass(frozen=True)
class Url:
    value: str
    label: Optional[str] = None

    @staticmethod
    def from_mapping(payload: Dict[str, Any]) -> "Url":
        return Url(value=str(payload.get("value", "") or ""), label=_label(payload))

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"value": self.value, "label": self.label}


@dataclass(frozen=True)
class Address:
    street: Optional[str] = None
    city: Optional[str] = None
    region: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    label: Optional[str] = None

    @staticmethod
    def from_mapping(payload: Dict[str, Any]) -> "Address":
        return Address(
            street=_opt_str(payload.get("street")),
            city=_opt_str(payload.get("city")),
            region=_opt_str(payload.get("region", payload.get("state"))),
            postal_code=_opt_str(payload.get("postal_code")),
            country=_opt_str(payload.get("country")),
            label=_label(payload),
        )

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "street": self.street,
            "city": self.city,
            "region": self.region,
            "postal_code": self.postal_code,
            "country": self.country,
            "label": self.label,
        }

    @property
    def formatted(self) -> str:
        parts = [self.street, self.city, self.region, self.postal_code, self.country]
        return ", ".join(part for part in parts if part)


@dataclass(frozen=True)
class Birthday:
    """Partial date; any component may be unknown."""

    year: Optional[int] = None
    month: Optional[int] = None
    day: Optional[int] = None

    @staticmethod
    def from_mapping(payload: Dict[str, Any]) -> "Birthday":
        def _int(key: str) -> Optional[int]:
            value = payload.get(key)
            if value in (None, ""):
                return None
            return int(value)

        return Birthday(year=_int("year"), month=_int("month"), day=_int("day"))

    def to_dict(self) -> Dict[str, Optional[int]]:
        return {"year": self.year, "month": self.month, "day": self.day}

    @property
    def is_empty(self) -> bool:
        return self.year is None and self.month is None and self.day is None


@dataclass
class ContactRecord:
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    source_id_a: Optional[str] = None
    source_id_b: Optional[str] = None
    given_name: Optional[str] = None
    middle_name: Optional[str] = None
    family_name: Optional[str] = None
    prefix: Optional[str] = None
    suffix: Optional[str] = None
    nickname: Optional[str] = None
    organization: Optional[str] = None
    department: Optional[str] = None
    job_title: Optional[str] = None
    emails: List[Email] = field(default_factory=list)
    phones: List[Phone] = field(default_factory=list)
    addresses: List[Address] = field(default_factory=list)
    urls: List[Url] = field(default_factory=list)
    birthday: Optional[Birthday] = None
    note: Optional[str] = None
    photo: Optional[bytes] = field(default=None, repr=False)
    last_modified: Optional[datetime] = None

    @staticmethod
    def _ensure_email_list(values: Sequence[Any]) -> List[Email]:
        return [
            value if isinstance(value, Email) else Email.from_mapping(value) for value in values
        ]

    @staticmethod
    def _ensure_phone_list(values: Sequence[Any]) -> List[Phone]:
        return [
            value if isinstance(value, Phone) else Phone.from_mapping(value) for value in values
        ]

    @staticmethod
    def _ensure_address_list(values: Sequence[Any]) -> List[Address]:
        return [
            value if isinstance(value, Address) else Address.from_mapping(value) for value in values
        ]

    @staticmethod
    def _ensure_url_list(values: Sequence[Any]) -> List[Url]:
        return [value if isinstance(value, Url) else Url.from_mapping(value) for value in values]

    @classmethod
    def from_mapping(cls, payload: Dict[str, Any]) -> "ContactRecord":
        birthday_raw = payload.get("birthday")
        birthday: Optional[Birthday]
        if isinstance(birthday_raw, Birthday):
            birthday = birthday_raw
        elif birthday_raw:
            birthday = Birthday.from_mapping(birthday_raw)
        else:
            birthday = None

        last_modified = payload.get("last_modified")
        if isinstance(last_modified, str) and last_modified:
            last_modified = datetime.fromisoformat(last_modified)

        record_id = _opt_str(payload.get("id"))
        return cls(
            id=record_id or str(uuid.uuid4()),
            source_id_a=_opt_str(payload.get("source_id_a")),
            source_id_b=_opt_str(payload.get("source_id_b")),
            given_name=_opt_str(payload.get("given_name")),
            middle_name=_opt_str(payload.get("middle_name")),
            family_name=_opt_str(payload.get("family_name")),
            prefix=_opt_str(payload.get("prefix")),
            suffix=_opt_str(payload.get("suffix")),
            nickname=_opt_str(payload.get("nickname")),
            organization=_opt_str(payload.get("organization")),
            department=_opt_str(payload.get("department")),
            job_title=_opt_str(payload.get("job_title")),
            emails=cls._ensure_email_list(payload.get("emails", []) or []),
            phones=cls._ensure_phone_list(payload.get("phones", []) or []),
            addresses=cls._ensure_address_list(payload.get("addresses", []) or []),
            urls=cls._ensure_url_list(payload.get("urls", []) or []),
            birthday=birthday,
            note=_opt_str(payload.get("note")),
            photo=payload.get("photo") or None,
            last_modified=last_modified or None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source_id_a": self.source_id_a,
            "source_id_b": self.source_id_b,
            "given_name": self.given_name,
            "middle_name": self.middle_name,
            "family_name": self.family_name,
            "prefix": self.prefix,
            "suffix": self.suffix,
            "nickname": self.nickname,
            "organization": self.organization,
            "department": self.department,
            "job_title": self.job_title,
            "emails": [email.to_dict() for email in self.emails],
            "phones": [phone.to_dict() for phone in self.phones],
            "addresses": [address.to_dict() for address in self.addresses],
            "urls": [url.to_dict() for url in self.urls],
            "birthday": self.birthday.to_dict() if self.birthday else None,
            "note": self.note,
            "last_modified": self.last_modified.isoformat() if self.last_modified else None,
        }

    def content_key(self) -> Tuple[Any, ...]:
        """Everything that defines the contact, minus identifiers, photo and timestamps."""
        return (
            self.given_name,
            self.middle_name,
            self.family_name,
            self.prefix,
            self.suffix,
            self.nickname,
            self.organization,
            self.department,
            self.job_title,
            tuple(self.emails),
            tuple(self.phones),
            tuple(self.addresses),
            tuple(self.urls),
            self.birthday,
            self.note,
        )

    def content_equals(self, other: "ContactRecord") -> bool:
        return self.content_key() == other.content_key()

    @property
    def display_name(self) -> str:
        parts = [self.prefix, self.given_name, self.middle_name, self.family_name, self.suffix]
        full_name = " ".join(part for part in parts if part)
        if full_name:
            return full_name
        return self.primary_email or "Unknown Contact"

    @property
    def primary_email(self) -> Optional[str]:
        return self.emails[0].value if self.emails else None

    @property
    def primary_phone(self) -> Optional[str]:
        return self.phones[0].value if self.phones else None

    def replace(self, **changes: Any) -> "ContactRecord":
        return replace(self, **changes)
