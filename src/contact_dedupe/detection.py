from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from .config_loader import DedupeConfig
from .dedupe_models import (
    ContactSource,
    DeduplicationError,
    DuplicateCandidate,
    DuplicateGroup,
    DuplicateGroupType,
)
from .models import ContactRecord
from .normalization import NormalizedView, normalized_view
from .scoring import MatchScoreBreakdown, MatchScorer

logger = logging.getLogger(__name__)

Link = Tuple[str, str]


class GroupDetector:
    """
    Pairwise duplicate detection within and across two sources.

    Every pair scoring at or above ``confirmation_threshold`` becomes its own
    two-candidate group. Chains (A~B, B~C) are not clustered transitively.
    """

    def __init__(self, config: DedupeConfig, scorer: Optional[MatchScorer] = None):
        self.config = config
        self.scorer = scorer or MatchScorer(max_name_distance=config.max_name_distance)

    def detect(
        self,
        records_a: Sequence[Any],
        records_b: Sequence[Any],
        existing_links: Iterable[Link] = (),
        errors: Optional[List[DeduplicationError]] = None,
    ) -> List[DuplicateGroup]:
        errors = errors if errors is not None else []
        prepared_a = self._prepare(records_a, ContactSource.SOURCE_A, errors)
        prepared_b = self._prepare(records_b, ContactSource.SOURCE_B, errors)

        groups: List[DuplicateGroup] = []
        groups.extend(self._within(prepared_a, ContactSource.SOURCE_A))
        groups.extend(self._within(prepared_b, ContactSource.SOURCE_B))
        groups.extend(self._across(prepared_a, prepared_b, existing_links))
        logger.info(
            "Detected %d duplicate group(s) from %d + %d record(s)",
            len(groups),
            len(prepared_a),
            len(prepared_b),
        )
        return groups

    def detect_within(
        self, records: Sequence[Any], source: ContactSource
    ) -> List[DuplicateGroup]:
        return self._within(self._prepare(records, source, []), source)

    def detect_across(
        self,
        records_a: Sequence[Any],
        records_b: Sequence[Any],
        existing_links: Iterable[Link] = (),
    ) -> List[DuplicateGroup]:
        return self._across(
            self._prepare(records_a, ContactSource.SOURCE_A, []),
            self._prepare(records_b, ContactSource.SOURCE_B, []),
            existing_links,
        )

    def _prepare(
        self,
        records: Sequence[Any],
        source: ContactSource,
        errors: List[DeduplicationError],
    ) -> List[Tuple[ContactRecord, NormalizedView]]:
        prepared: List[Tuple[ContactRecord, NormalizedView]] = []
        for index, raw in enumerate(records):
            try:
                record = raw if isinstance(raw, ContactRecord) else ContactRecord.from_mapping(raw)
                view = normalized_view(record)
            except (AttributeError, TypeError, ValueError) as exc:
                logger.warning("Skipping malformed %s record #%d: %s", source.value, index, exc)
                errors.append(
                    DeduplicationError(
                        message=f"Skipped malformed record: {exc}",
                        context=f"{source.value}[{index}]",
                    )
                )
                continue
            prepared.append((record, view))
        return prepared

    def _qualifies(self, breakdown: MatchScoreBreakdown) -> bool:
        # A zero score never forms a group, even with a zero threshold.
        score = breakdown.total_score
        return score > 0 and score >= self.config.confirmation_threshold

    def _group(
        self,
        first: DuplicateCandidate,
        second: DuplicateCandidate,
        breakdown: MatchScoreBreakdown,
        group_type: DuplicateGroupType,
    ) -> DuplicateGroup:
        return DuplicateGroup(
            candidates=[first, second],
            match_score=breakdown.total_score,
            match_reason=breakdown.primary_reason,
            group_type=group_type,
            breakdown=breakdown,
        )

    def _within(
        self, prepared: List[Tuple[ContactRecord, NormalizedView]], source: ContactSource
    ) -> List[DuplicateGroup]:
        groups: List[DuplicateGroup] = []
        group_type = DuplicateGroupType.within(source)
        for i in range(len(prepared)):
            record_i, view_i = prepared[i]
            for j in range(i + 1, len(prepared)):
                record_j, view_j = prepared[j]
                breakdown = self.scorer.score(record_i, record_j, view_i, view_j)
                if not self._qualifies(breakdown):
                    continue
                groups.append(
                    self._group(
                        DuplicateCandidate(record=record_i, source=source),
                        DuplicateCandidate(record=record_j, source=source),
                        breakdown,
                        group_type,
                    )
                )
        logger.debug("%s: %d within-source group(s)", source.value, len(groups))
        return groups

    def _across(
        self,
        prepared_a: List[Tuple[ContactRecord, NormalizedView]],
        prepared_b: List[Tuple[ContactRecord, NormalizedView]],
        existing_links: Iterable[Link],
    ) -> List[DuplicateGroup]:
        linked: Dict[str, set] = {}
        for key_a, key_b in existing_links:
            linked.setdefault(key_a, set()).add(key_b)

        groups: List[DuplicateGroup] = []
        skipped = 0
        for record_a, view_a in prepared_a:
            already = linked.get(record_a.source_id_a or "", set())
            for record_b, view_b in prepared_b:
                if record_a.source_id_a and record_b.source_id_b and record_b.source_id_b in already:
                    skipped += 1
                    continue
                breakdown = self.scorer.score(record_a, record_b, view_a, view_b)
                if not self._qualifies(breakdown):
                    continue
                groups.append(
                    self._group(
                        DuplicateCandidate(record=record_a, source=ContactSource.SOURCE_A),
                        DuplicateCandidate(record=record_b, source=ContactSource.SOURCE_B),
                        breakdown,
                        DuplicateGroupType.ACROSS_SOURCES,
                    )
                )
        logger.debug("across sources: %d group(s), %d linked pair(s) skipped", len(groups), skipped)
        return groups


__all__ = ["GroupDetector", "Link"]
