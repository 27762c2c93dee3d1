from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Protocol, Union

from .dedupe_models import DuplicateDecision, DuplicatePattern, PatternStatistics

logger = logging.getLogger(__name__)


class PatternStore(Protocol):
    """Key-value access to remembered duplicate decisions, keyed by pattern signature."""

    def get(self, pattern: str) -> Optional[DuplicateDecision]:
        ...

    def put(self, pattern: str, decision: DuplicateDecision) -> DuplicatePattern:
        ...

    def delete(self, pattern: str) -> bool:
        ...

    def list(self) -> List[DuplicatePattern]:
        ...

    def clear(self) -> None:
        ...

    def statistics(self) -> PatternStatistics:
        ...


class InMemoryPatternStore:
    """
    Single writer, many readers.

    Writers serialize on a lock and publish a fresh read-only snapshot; readers
    only ever see a complete snapshot and never take the lock.
    """

    def __init__(self, patterns: Optional[Mapping[str, DuplicatePattern]] = None):
        self._lock = threading.Lock()
        self._snapshot: Mapping[str, DuplicatePattern] = MappingProxyType(dict(patterns or {}))

    def _publish(self, patterns: Dict[str, DuplicatePattern]) -> None:
        self._snapshot = MappingProxyType(patterns)

    def _persist(self, patterns: Mapping[str, DuplicatePattern]) -> None:
        """Hook for durable stores; runs while the write lock is held."""

    def get(self, pattern: str) -> Optional[DuplicateDecision]:
        record = self._snapshot.get(pattern)
        return record.decision if record else None

    def put(self, pattern: str, decision: DuplicateDecision) -> DuplicatePattern:
        record = DuplicatePattern(pattern=pattern, decision=DuplicateDecision(decision))
        with self._lock:
            updated = dict(self._snapshot)
            updated[pattern] = record
            self._persist(updated)
            self._publish(updated)
        logger.info("Saved duplicate pattern %s -> %s", pattern, record.decision.value)
        return record

    def delete(self, pattern: str) -> bool:
        with self._lock:
            if pattern not in self._snapshot:
                return False
            updated = dict(self._snapshot)
            del updated[pattern]
            self._persist(updated)
            self._publish(updated)
        logger.info("Deleted duplicate pattern %s", pattern)
        return True

    def list(self) -> List[DuplicatePattern]:
        return sorted(self._snapshot.values(), key=lambda p: p.created_at, reverse=True)

    def clear(self) -> None:
        with self._lock:
            self._persist({})
            self._publish({})
        logger.info("Cleared all duplicate patterns")

    def statistics(self) -> PatternStatistics:
        patterns = list(self._snapshot.values())
        return PatternStatistics(
            total_patterns=len(patterns),
            merge_patterns=sum(1 for p in patterns if p.decision is DuplicateDecision.MERGE),
            keep_separate_patterns=sum(
                1 for p in patterns if p.decision is DuplicateDecision.KEEP_SEPARATE
            ),
            skip_patterns=sum(1 for p in patterns if p.decision is DuplicateDecision.SKIP),
        )

    def __len__(self) -> int:
        return len(self._snapshot)


class JsonFilePatternStore(InMemoryPatternStore):
    """Patterns persisted as a JSON list, rewritten atomically on every change."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        super().__init__(self._load())

    def _load(self) -> Dict[str, DuplicatePattern]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                payload = json.load(handle)
            patterns = [DuplicatePattern.from_mapping(entry) for entry in payload]
        except (OSError, ValueError, KeyError, TypeError) as exc:
            logger.warning("Ignoring unreadable pattern file %s: %s", self.path, exc)
            return {}
        logger.info("Loaded %d duplicate pattern(s) from %s", len(patterns), self.path)
        return {pattern.pattern: pattern for pattern in patterns}

    def _persist(self, patterns: Mapping[str, DuplicatePattern]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = [pattern.to_dict() for pattern in patterns.values()]
        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise


__all__ = ["InMemoryPatternStore", "JsonFilePatternStore", "PatternStore"]
