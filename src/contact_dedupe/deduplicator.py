from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from .config_loader import DedupeConfig
from .dedupe_models import (
    DeduplicationError,
    DeduplicationResult,
    DeduplicationStats,
    DuplicateDecision,
    DuplicateGroup,
    GroupClassification,
    MergePreview,
)
from .detection import GroupDetector, Link
from .merge import generate_preview, merge
from .models import ContactRecord
from .pattern_store import PatternStore
from .policy import DecisionPolicy
from .scoring import MatchScoreBreakdown, MatchScorer

logger = logging.getLogger(__name__)


class SyncMode(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"


class ContactDeduplicator:
    """
    Entry point tying detection, decision policy and merging together.

    All collaborators are passed in; nothing here reaches for process-wide state.
    """

    def __init__(
        self,
        config: Optional[DedupeConfig] = None,
        pattern_store: Optional[PatternStore] = None,
        scorer: Optional[MatchScorer] = None,
    ):
        self.config = config or DedupeConfig()
        self.pattern_store = pattern_store
        self.scorer = scorer or MatchScorer(max_name_distance=self.config.max_name_distance)
        self.detector = GroupDetector(self.config, scorer=self.scorer)
        self.policy = DecisionPolicy(self.config)

    def detect_duplicates(
        self,
        records_a: Sequence[Any],
        records_b: Sequence[Any],
        existing_links: Iterable[Link] = (),
    ) -> DeduplicationResult:
        started = time.perf_counter()
        errors: List[DeduplicationError] = []
        logger.info("Duplicate scan starting: source_a=%d source_b=%d", len(records_a), len(records_b))

        groups = self.detector.detect(records_a, records_b, existing_links, errors=errors)
        groups = self.policy.classify_and_apply_patterns(groups, self.pattern_store, errors)
        groups.sort(key=lambda group: group.sort_key())

        result = DeduplicationResult(
            stats=DeduplicationStats(
                total_contacts_scanned=len(records_a) + len(records_b),
                duplicate_groups_found=len(groups),
            ),
            groups=groups,
            errors=errors,
            config=self.config,
        )
        stats = result.stats
        stats.auto_merge_groups = sum(
            1 for group in groups if group.classification is GroupClassification.AUTO_MERGE
        )
        stats.user_confirmation_groups = len(result.groups_needing_confirmation)
        stats.separate_groups = sum(
            1 for group in groups if group.classification is GroupClassification.KEEP_SEPARATE
        )
        stats.scan_duration = time.perf_counter() - started

        logger.info("Duplicate scan finished: %s", stats.summary)
        if errors:
            logger.warning("Duplicate scan recorded %d error(s)", len(errors))
        return result

    def calculate_match_score(self, a: ContactRecord, b: ContactRecord) -> MatchScoreBreakdown:
        return self.scorer.score(a, b)

    def generate_merge_preview(self, group: DuplicateGroup) -> MergePreview:
        return generate_preview(group)

    def is_safe_to_auto_merge(self, group: DuplicateGroup) -> bool:
        return self.policy.is_safe_to_auto_merge(group)

    def record_user_decision(
        self, decision: DuplicateDecision, group: DuplicateGroup, remember_pattern: bool = False
    ) -> Optional[str]:
        return self.policy.record_user_decision(
            decision, group, patterns=self.pattern_store, remember=remember_pattern
        )

    def merge_group(self, group: DuplicateGroup, prefer_later: bool = False) -> ContactRecord:
        return merge(group.records, prefer_later=prefer_later)

    def apply_decisions(
        self,
        result: DeduplicationResult,
        decisions: Mapping[str, DuplicateDecision],
        remember_patterns: Iterable[str] = (),
    ) -> Dict[str, ContactRecord]:
        """
        Record decisions by group id and return the merged record for every group
        decided ``merge``. Unknown group ids are logged and ignored.
        """
        remember = set(remember_patterns)
        by_id = {group.id: group for group in result.groups}
        merged: Dict[str, ContactRecord] = {}
        for group_id, decision in decisions.items():
            group = by_id.get(group_id)
            if group is None:
                logger.warning("Ignoring decision for unknown group %s", group_id)
                continue
            self.record_user_decision(decision, group, remember_pattern=group_id in remember)
            if group.user_decision is DuplicateDecision.MERGE:
                merged[group_id] = self.merge_group(group)
        result.stats.total_merged_contacts += sum(
            len(by_id[group_id].candidates) for group_id in merged
        )
        return merged

    def apply_safe_merges(self, result: DeduplicationResult) -> Dict[str, ContactRecord]:
        """Merge every group classified as safe to auto-merge, marking it ``merge``."""
        merged: Dict[str, ContactRecord] = {}
        for group in result.groups:
            if group.classification is not GroupClassification.AUTO_MERGE:
                continue
            if group.user_decision not in (None, DuplicateDecision.MERGE):
                continue
            group.user_decision = DuplicateDecision.MERGE
            merged[group.id] = self.merge_group(group)
            logger.info("Auto-merged group %s (score=%d)", group.id, group.match_score)
        result.stats.total_merged_contacts += sum(
            len(group.candidates) for group in result.groups if group.id in merged
        )
        return merged

    def should_proceed_with_sync(self, result: DeduplicationResult, mode: SyncMode) -> bool:
        if not result.needs_user_confirmation:
            return True
        if mode is SyncMode.AUTOMATIC:
            logger.warning(
                "Skipping automatic sync: %d duplicate group(s) need confirmation",
                len(result.groups_needing_confirmation),
            )
        return False


__all__ = ["ContactDeduplicator", "SyncMode"]
