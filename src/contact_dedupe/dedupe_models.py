from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from .config_loader import DedupeConfig
from .models import ContactRecord
from .scoring import MatchScoreBreakdown

CRITICAL_FIELDS = ("First Name", "Last Name", "Organization")

_DEFAULT_CONFIG = DedupeConfig()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ContactSource(str, Enum):
    SOURCE_A = "source_a"
    SOURCE_B = "source_b"

    @property
    def display_name(self) -> str:
        return {"source_a": "Source A", "source_b": "Source B"}[self.value]


class DuplicateGroupType(str, Enum):
    WITHIN_SOURCE_A = "within_source_a"
    WITHIN_SOURCE_B = "within_source_b"
    ACROSS_SOURCES = "across_sources"
    CROSS_MAPPING = "cross_mapping"

    @property
    def description(self) -> str:
        return {
            "within_source_a": "Within Source A",
            "within_source_b": "Within Source B",
            "across_sources": "Across Source A / Source B",
            "cross_mapping": "One-to-Many Mapping",
        }[self.value]

    @staticmethod
    def within(source: ContactSource) -> "DuplicateGroupType":
        if source is ContactSource.SOURCE_A:
            return DuplicateGroupType.WITHIN_SOURCE_A
        return DuplicateGroupType.WITHIN_SOURCE_B


class DuplicateDecision(str, Enum):
    MERGE = "merge"
    KEEP_SEPARATE = "keep_separate"
    SKIP = "skip"


class GroupClassification(str, Enum):
    AUTO_MERGE = "auto_merge"
    NEEDS_CONFIRMATION = "needs_confirmation"
    KEEP_SEPARATE = "keep_separate"


@dataclass
class DuplicateCandidate:
    record: ContactRecord
    source: ContactSource
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def display_name(self) -> str:
        return self.record.display_name


@dataclass
class DuplicateGroup:
    candidates: List[DuplicateCandidate]
    match_score: int
    match_reason: str
    group_type: DuplicateGroupType
    user_decision: Optional[DuplicateDecision] = None
    detected_at: datetime = field(default_factory=_utcnow)
    breakdown: Optional[MatchScoreBreakdown] = None
    classification: Optional[GroupClassification] = None
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def records(self) -> List[ContactRecord]:
        return [candidate.record for candidate in self.candidates]

    def should_auto_merge(self, config: Optional[DedupeConfig] = None) -> bool:
        cfg = config or _DEFAULT_CONFIG
        return (
            self.match_score >= cfg.auto_merge_threshold
            and len(self.candidates) <= cfg.max_auto_merge_group_size
        )

    def should_prompt_user(self, config: Optional[DedupeConfig] = None) -> bool:
        cfg = config or _DEFAULT_CONFIG
        return cfg.confirmation_threshold <= self.match_score < cfg.auto_merge_threshold

    def should_keep_separate(self, config: Optional[DedupeConfig] = None) -> bool:
        cfg = config or _DEFAULT_CONFIG
        return self.match_score < cfg.confirmation_threshold

    def needs_user_confirmation(self, config: Optional[DedupeConfig] = None) -> bool:
        return self.should_prompt_user(config) or (
            self.should_auto_merge(config) and self.user_decision is None
        )

    def sort_key(self) -> Tuple[str, Tuple[str, ...]]:
        return (self.group_type.value, tuple(sorted(c.record.id for c in self.candidates)))


@dataclass(frozen=True)
class DuplicatePattern:
    pattern: str
    decision: DuplicateDecision
    created_at: datetime = field(default_factory=_utcnow)
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @staticmethod
    def from_mapping(payload: Dict[str, Any]) -> "DuplicatePattern":
        created_raw = payload.get("created_at")
        created_at = datetime.fromisoformat(created_raw) if created_raw else _utcnow()
        return DuplicatePattern(
            pattern=str(payload["pattern"]),
            decision=DuplicateDecision(payload["decision"]),
            created_at=created_at,
            id=str(payload.get("id") or uuid.uuid4()),
        )

    def to_dict(self) -> Dict[str, str]:
        return {
            "id": self.id,
            "pattern": self.pattern,
            "decision": self.decision.value,
            "created_at": self.created_at.isoformat(),
        }


@dataclass
class PatternStatistics:
    total_patterns: int = 0
    merge_patterns: int = 0
    keep_separate_patterns: int = 0
    skip_patterns: int = 0

    @property
    def summary(self) -> str:
        return (
            f"Total saved patterns: {self.total_patterns} "
            f"(merge={self.merge_patterns}, keep_separate={self.keep_separate_patterns}, "
            f"skip={self.skip_patterns})"
        )


@dataclass(frozen=True)
class MergeChange:
    field_name: str
    values: Tuple[str, ...]
    chosen_value: str
    is_conflict: bool


@dataclass
class MergePreview:
    original_records: List[ContactRecord]
    merged_record: ContactRecord
    changes: List[MergeChange]

    @property
    def has_conflicts(self) -> bool:
        return any(change.is_conflict for change in self.changes)

    @property
    def conflict_count(self) -> int:
        return sum(1 for change in self.changes if change.is_conflict)

    @property
    def critical_conflicts(self) -> List[MergeChange]:
        return [
            change
            for change in self.changes
            if change.is_conflict and change.field_name in CRITICAL_FIELDS
        ]


@dataclass
class DeduplicationStats:
    total_contacts_scanned: int = 0
    duplicate_groups_found: int = 0
    auto_merge_groups: int = 0
    user_confirmation_groups: int = 0
    separate_groups: int = 0
    total_merged_contacts: int = 0
    scan_duration: float = 0.0

    @property
    def summary(self) -> str:
        return (
            f"scanned={self.total_contacts_scanned} groups={self.duplicate_groups_found} "
            f"auto_merge={self.auto_merge_groups} "
            f"needs_confirmation={self.user_confirmation_groups} "
            f"keep_separate={self.separate_groups} duration={self.scan_duration:.2f}s"
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_contacts_scanned": self.total_contacts_scanned,
            "duplicate_groups_found": self.duplicate_groups_found,
            "auto_merge_groups": self.auto_merge_groups,
            "user_confirmation_groups": self.user_confirmation_groups,
            "separate_groups": self.separate_groups,
            "total_merged_contacts": self.total_merged_contacts,
            "scan_duration": round(self.scan_duration, 4),
        }


@dataclass(frozen=True)
class DeduplicationError:
    message: str
    context: str = ""
    contact_name: Optional[str] = None
    timestamp: datetime = field(default_factory=_utcnow)


@dataclass
class DeduplicationResult:
    stats: DeduplicationStats
    groups: List[DuplicateGroup]
    errors: List[DeduplicationError] = field(default_factory=list)
    config: DedupeConfig = field(default_factory=DedupeConfig)

    def _needs_confirmation(self, group: DuplicateGroup) -> bool:
        if group.needs_user_confirmation(self.config):
            return True
        # Demoted by a critical-field conflict and still undecided.
        return (
            group.classification is GroupClassification.NEEDS_CONFIRMATION
            and group.user_decision is None
        )

    @property
    def needs_user_confirmation(self) -> bool:
        return any(self._needs_confirmation(group) for group in self.groups)

    @property
    def groups_needing_confirmation(self) -> List[DuplicateGroup]:
        return [group for group in self.groups if self._needs_confirmation(group)]

    @property
    def auto_merge_groups(self) -> List[DuplicateGroup]:
        return [
            group
            for group in self.groups
            if group.should_auto_merge(self.config)
            and group.classification is not GroupClassification.NEEDS_CONFIRMATION
            and group.user_decision is DuplicateDecision.MERGE
        ]


__all__ = [
    "CRITICAL_FIELDS",
    "ContactSource",
    "DeduplicationError",
    "DeduplicationResult",
    "DeduplicationStats",
    "DuplicateCandidate",
    "DuplicateDecision",
    "DuplicateGroup",
    "DuplicateGroupType",
    "DuplicatePattern",
    "GroupClassification",
    "MergeChange",
    "MergePreview",
    "PatternStatistics",
]
