from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import pandas as pd

from .config_loader import DedupeConfig
from .dedupe_models import DeduplicationStats, DuplicateGroup

GROUP_COLUMNS = [
    "group_id",
    "group_type",
    "match_score",
    "match_reason",
    "reasons",
    "classification",
    "user_decision",
    "needs_confirmation",
    "candidate_count",
    "candidate_ids",
    "candidate_names",
    "candidate_sources",
    "detected_at",
]


def groups_to_frame(
    groups: Sequence[DuplicateGroup], config: Optional[DedupeConfig] = None
) -> pd.DataFrame:
    rows: List[Dict[str, Any]] = []
    for group in groups:
        reasons = group.breakdown.reasons if group.breakdown else [group.match_reason]
        rows.append(
            {
                "group_id": group.id,
                "group_type": group.group_type.value,
                "match_score": group.match_score,
                "match_reason": group.match_reason,
                "reasons": "|".join(reasons),
                "classification": group.classification.value if group.classification else "",
                "user_decision": group.user_decision.value if group.user_decision else "",
                "needs_confirmation": group.needs_user_confirmation(config),
                "candidate_count": len(group.candidates),
                "candidate_ids": "|".join(c.record.id for c in group.candidates),
                "candidate_names": "|".join(c.display_name for c in group.candidates),
                "candidate_sources": "|".join(c.source.value for c in group.candidates),
                "detected_at": group.detected_at.isoformat(),
            }
        )
    return pd.DataFrame(rows, columns=GROUP_COLUMNS)


def stats_to_frame(stats: DeduplicationStats, error_count: int = 0) -> pd.DataFrame:
    payload = stats.to_dict()
    payload["errors"] = error_count
    # object dtype keeps the integer counters from being upcast next to scan_duration
    return pd.DataFrame(
        [{"metric": key, "value": value} for key, value in payload.items()],
        columns=["metric", "value"],
        dtype=object,
    )


__all__ = ["GROUP_COLUMNS", "groups_to_frame", "stats_to_frame"]
