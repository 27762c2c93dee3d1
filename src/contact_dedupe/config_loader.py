from __future__ import annotations

import argparse
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml  # type: ignore[import-untyped]


@dataclass(frozen=True)
class DedupeConfig:
    auto_merge_threshold: int = 80
    confirmation_threshold: int = 50
    max_auto_merge_group_size: int = 3
    max_name_distance: int = 2
    enable_pattern_memory: bool = True

    def __post_init__(self) -> None:
        if self.auto_merge_threshold < 0:
            raise ValueError(
                f"auto_merge_threshold must be non-negative, got {self.auto_merge_threshold}"
            )
        if self.confirmation_threshold < 0:
            raise ValueError(
                f"confirmation_threshold must be non-negative, got {self.confirmation_threshold}"
            )
        if self.confirmation_threshold > self.auto_merge_threshold:
            raise ValueError(
                "confirmation_threshold "
                f"({self.confirmation_threshold}) must not exceed auto_merge_threshold "
                f"({self.auto_merge_threshold})"
            )
        if self.max_auto_merge_group_size < 2:
            raise ValueError(
                "max_auto_merge_group_size must be at least 2, "
                f"got {self.max_auto_merge_group_size}"
            )
        if self.max_name_distance < 0:
            raise ValueError(
                f"max_name_distance must be non-negative, got {self.max_name_distance}"
            )


@dataclass
class OutputsConfig:
    dir: Path


@dataclass
class PatternStoreConfig:
    path: Optional[Path] = None


@dataclass
class LoggingConfig:
    level: str = "WARNING"


@dataclass
class PipelineConfig:
    inputs: Dict[str, Optional[str]]
    outputs: OutputsConfig
    dedupe: DedupeConfig
    patterns: PatternStoreConfig
    logging: LoggingConfig


def _load_yaml(path: Optional[str]) -> Dict[str, Any]:
    if not path:
        return {}
    with open(path, "r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


_TRUE_STRINGS = {"true", "yes", "on", "1"}
_FALSE_STRINGS = {"false", "no", "off", "0"}


def _as_bool(value: Any, key: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    raise ValueError(f"{key} must be a boolean, got {value!r}")


def _pick(args: argparse.Namespace, arg_name: str, section: Dict[str, Any], key: str, default: Any) -> Any:
    value = getattr(args, arg_name, None)
    if value is not None:
        return value
    return section.get(key, default)


def load_pipeline_config(args: argparse.Namespace) -> PipelineConfig:
    config_data = _load_yaml(getattr(args, "config", None))
    inputs = config_data.get("inputs", {}) or {}
    outputs_cfg = config_data.get("outputs", {}) or {}
    dedupe_cfg = config_data.get("dedupe", {}) or {}
    patterns_cfg = config_data.get("patterns", {}) or {}
    logging_cfg = config_data.get("logging", {}) or {}

    outputs_dir = Path(getattr(args, "out_dir", None) or outputs_cfg.get("dir") or os.getcwd())
    outputs = OutputsConfig(dir=outputs_dir)

    dedupe = DedupeConfig(
        auto_merge_threshold=int(
            _pick(args, "auto_merge_threshold", dedupe_cfg, "auto_merge_threshold", 80)
        ),
        confirmation_threshold=int(
            _pick(args, "confirmation_threshold", dedupe_cfg, "confirmation_threshold", 50)
        ),
        max_auto_merge_group_size=int(
            _pick(args, "max_auto_merge_group_size", dedupe_cfg, "max_auto_merge_group_size", 3)
        ),
        max_name_distance=int(
            _pick(args, "max_name_distance", dedupe_cfg, "max_name_distance", 2)
        ),
        enable_pattern_memory=_as_bool(
            _pick(args, "enable_pattern_memory", dedupe_cfg, "enable_pattern_memory", True),
            "enable_pattern_memory",
        ),
    )

    patterns_path = getattr(args, "patterns_json", None) or patterns_cfg.get("path")
    patterns = PatternStoreConfig(path=Path(patterns_path) if patterns_path else None)

    arg_level = getattr(args, "log_level", None)
    effective_level = (arg_level or logging_cfg.get("level") or "WARNING").upper()
    logging_config = LoggingConfig(level=effective_level)

    resolved_inputs = {
        "source_a_json": getattr(args, "source_a_json", None) or inputs.get("source_a_json"),
        "source_b_json": getattr(args, "source_b_json", None) or inputs.get("source_b_json"),
        "links_json": getattr(args, "links_json", None) or inputs.get("links_json"),
    }

    return PipelineConfig(
        inputs=resolved_inputs,
        outputs=outputs,
        dedupe=dedupe,
        patterns=patterns,
        logging=logging_config,
    )
