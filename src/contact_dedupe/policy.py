from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from .config_loader import DedupeConfig
from .dedupe_models import (
    DeduplicationError,
    DuplicateDecision,
    DuplicateGroup,
    GroupClassification,
)
from .merge import generate_preview
from .pattern_store import PatternStore

logger = logging.getLogger(__name__)


def pattern_signature(group: DuplicateGroup) -> str:
    """Signature used to recall remembered decisions, e.g. ``type:across_sources|score:80|reason:Same email address|count:2``."""
    return "|".join(
        [
            f"type:{group.group_type.value}",
            f"score:{group.match_score // 10 * 10}",
            f"reason:{group.match_reason}",
            f"count:{len(group.candidates)}",
        ]
    )


class DecisionPolicy:
    def __init__(self, config: DedupeConfig):
        self.config = config

    def is_safe_to_auto_merge(self, group: DuplicateGroup) -> bool:
        if not group.should_auto_merge(self.config):
            return False
        critical = generate_preview(group).critical_conflicts
        if critical:
            logger.debug(
                "Group %s demoted from auto-merge: conflicting %s",
                group.id,
                ", ".join(change.field_name for change in critical),
            )
            return False
        return True

    def classify(self, group: DuplicateGroup) -> GroupClassification:
        if group.should_keep_separate(self.config):
            return GroupClassification.KEEP_SEPARATE
        if self.is_safe_to_auto_merge(group):
            return GroupClassification.AUTO_MERGE
        return GroupClassification.NEEDS_CONFIRMATION

    def apply_patterns(
        self,
        groups: Sequence[DuplicateGroup],
        patterns: Optional[PatternStore],
        errors: Optional[List[DeduplicationError]] = None,
    ) -> List[DuplicateGroup]:
        if patterns is None or not self.config.enable_pattern_memory:
            return list(groups)
        for group in groups:
            if group.user_decision is not None:
                continue
            signature = pattern_signature(group)
            try:
                decision = patterns.get(signature)
            except Exception as exc:  # any store backend failure
                logger.warning("Pattern lookup failed, continuing without saved decisions: %s", exc)
                if errors is not None:
                    errors.append(
                        DeduplicationError(
                            message=f"Pattern store lookup failed: {exc}",
                            context=signature,
                        )
                    )
                break
            if decision is not None:
                group.user_decision = decision
                logger.info("Applied saved %s decision for pattern %s", decision.value, signature)
        return list(groups)

    def classify_and_apply_patterns(
        self,
        groups: Sequence[DuplicateGroup],
        patterns: Optional[PatternStore],
        errors: Optional[List[DeduplicationError]] = None,
    ) -> List[DuplicateGroup]:
        classified = self.apply_patterns(groups, patterns, errors)
        for group in classified:
            group.classification = self.classify(group)
        return classified

    def record_user_decision(
        self,
        decision: DuplicateDecision,
        group: DuplicateGroup,
        patterns: Optional[PatternStore] = None,
        remember: bool = False,
    ) -> Optional[str]:
        decision = DuplicateDecision(decision)
        group.user_decision = decision
        logger.info(
            "User chose %s for %d contact(s), score=%d",
            decision.value,
            len(group.candidates),
            group.match_score,
        )
        if remember and patterns is not None and self.config.enable_pattern_memory:
            signature = pattern_signature(group)
            patterns.put(signature, decision)
            return signature
        return None


__all__ = ["DecisionPolicy", "GroupClassification", "pattern_signature"]
