from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional, Sequence, TypeVar, Union

from .dedupe_models import DuplicateGroup, MergeChange, MergePreview
from .models import Birthday, ContactRecord

logger = logging.getLogger(__name__)

T = TypeVar("T")

NOTE_SEPARATOR = "\n\n---\n\n"


def _has_value(value: object) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, Birthday):
        return not value.is_empty
    if isinstance(value, (bytes, bytearray)):
        return len(value) > 0
    return True


def _choose(mine: Optional[T], theirs: Optional[T], prefer_later: bool) -> Optional[T]:
    if prefer_later:
        return theirs if _has_value(theirs) else mine
    return mine if _has_value(mine) else theirs


def _union(first: Iterable[T], second: Iterable[T]) -> List[T]:
    seen = set()
    out: List[T] = []
    for item in list(first) + list(second):
        if item in seen:
            continue
        seen.add(item)
        out.append(item)
    return out


def _merge_notes(note1: Optional[str], note2: Optional[str]) -> Optional[str]:
    if not _has_value(note1):
        return note2 if _has_value(note2) else note1
    if not _has_value(note2) or note1 == note2:
        return note1
    return f"{note1}{NOTE_SEPARATOR}{note2}"


def merge_pair(a: ContactRecord, b: ContactRecord, prefer_later: bool = False) -> ContactRecord:
    """
    Merge ``b`` into ``a`` and return a new record.

    Scalars keep the first non-empty value, or the later record's value when
    ``prefer_later`` is set and both sides have one. Multi-valued fields are
    unioned in first-seen order with exact duplicates dropped. Differing notes
    are concatenated, and the later ``last_modified`` wins. The merged record
    keeps ``a``'s id.
    """

    def choose(getter: Callable[[ContactRecord], Optional[T]]) -> Optional[T]:
        return _choose(getter(a), getter(b), prefer_later)

    if a.last_modified and b.last_modified:
        last_modified = max(a.last_modified, b.last_modified)
    else:
        last_modified = a.last_modified or b.last_modified

    return a.replace(
        source_id_a=choose(lambda r: r.source_id_a),
        source_id_b=choose(lambda r: r.source_id_b),
        given_name=choose(lambda r: r.given_name),
        middle_name=choose(lambda r: r.middle_name),
        family_name=choose(lambda r: r.family_name),
        prefix=choose(lambda r: r.prefix),
        suffix=choose(lambda r: r.suffix),
        nickname=choose(lambda r: r.nickname),
        organization=choose(lambda r: r.organization),
        department=choose(lambda r: r.department),
        job_title=choose(lambda r: r.job_title),
        emails=_union(a.emails, b.emails),
        phones=_union(a.phones, b.phones),
        addresses=_union(a.addresses, b.addresses),
        urls=_union(a.urls, b.urls),
        birthday=choose(lambda r: r.birthday),
        note=_merge_notes(a.note, b.note),
        photo=choose(lambda r: r.photo),
        last_modified=last_modified,
    )


def merge(records: Sequence[ContactRecord], prefer_later: bool = False) -> ContactRecord:
    if not records:
        raise ValueError("cannot merge an empty group of contact records")
    merged = records[0]
    for record in records[1:]:
        merged = merge_pair(merged, record, prefer_later=prefer_later)
    return merged


def _distinct(values: Iterable[Optional[str]]) -> List[str]:
    out: List[str] = []
    for value in values:
        if _has_value(value) and value not in out:
            out.append(value)  # type: ignore[arg-type]
    return out


def generate_preview(
    group: Union[DuplicateGroup, Sequence[ContactRecord]], prefer_later: bool = False
) -> MergePreview:
    records = group.records if isinstance(group, DuplicateGroup) else list(group)
    merged = merge(records, prefer_later=prefer_later)

    changes: List[MergeChange] = []
    for field_name, getter in (
        ("First Name", lambda r: r.given_name),
        ("Last Name", lambda r: r.family_name),
        ("Organization", lambda r: r.organization),
    ):
        values = _distinct(getter(record) for record in records)
        if len(values) > 1:
            changes.append(
                MergeChange(
                    field_name=field_name,
                    values=tuple(values),
                    chosen_value=getter(merged) or "",
                    is_conflict=True,
                )
            )

    emails = tuple(email.value for email in merged.emails)
    if emails:
        changes.append(
            MergeChange(
                field_name="Email Addresses",
                values=emails,
                chosen_value=f"{len(emails)} total",
                is_conflict=False,
            )
        )
    phones = tuple(phone.value for phone in merged.phones)
    if phones:
        changes.append(
            MergeChange(
                field_name="Phone Numbers",
                values=phones,
                chosen_value=f"{len(phones)} total",
                is_conflict=False,
            )
        )

    preview = MergePreview(original_records=list(records), merged_record=merged, changes=changes)
    if preview.has_conflicts:
        logger.debug(
            "Merge preview for %d records has %d conflict(s)",
            len(records),
            preview.conflict_count,
        )
    return preview


__all__ = ["NOTE_SEPARATOR", "generate_preview", "merge", "merge_pair"]
