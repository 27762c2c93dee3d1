import argparse
import csv
import logging
from typing import Optional, Tuple

import pandas as pd

from .common import load_config, load_links_json, load_records_json
from .config_loader import PipelineConfig
from .deduplicator import ContactDeduplicator
from .dedupe_models import DeduplicationResult
from .logging_utils import configure_logging
from .pattern_store import InMemoryPatternStore, JsonFilePatternStore, PatternStore
from .report import groups_to_frame, stats_to_frame

logger = logging.getLogger(__name__)


def _build_pattern_store(config: PipelineConfig) -> PatternStore:
    if config.patterns.path:
        return JsonFilePatternStore(config.patterns.path)
    return InMemoryPatternStore()


def build(
    args: argparse.Namespace, config: Optional[PipelineConfig] = None
) -> Tuple[DeduplicationResult, pd.DataFrame, pd.DataFrame]:
    config = config or load_config(args)
    records_a = load_records_json(config.inputs.get("source_a_json"), "Source A JSON")
    records_b = load_records_json(config.inputs.get("source_b_json"), "Source B JSON")
    links = load_links_json(config.inputs.get("links_json"))

    deduplicator = ContactDeduplicator(config.dedupe, pattern_store=_build_pattern_store(config))
    result = deduplicator.detect_duplicates(records_a, records_b, links)

    groups_df = groups_to_frame(result.groups, config.dedupe)
    summary_df = stats_to_frame(result.stats, error_count=len(result.errors))
    for error in result.errors:
        logger.warning("%s (%s)", error.message, error.context)
    return result, groups_df, summary_df


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Detect likely duplicate contacts within and across two sources."
    )
    parser.add_argument("--config", type=str, default=None, help="Path to YAML config.")
    parser.add_argument("--source-a-json", type=str, default=None)
    parser.add_argument("--source-b-json", type=str, default=None)
    parser.add_argument("--links-json", type=str, default=None)
    parser.add_argument("--patterns-json", type=str, default=None)
    parser.add_argument("--out-dir", type=str, default=None)
    parser.add_argument("--auto-merge-threshold", type=int, default=None)
    parser.add_argument("--confirmation-threshold", type=int, default=None)
    parser.add_argument("--max-auto-merge-group-size", type=int, default=None)
    parser.add_argument("--max-name-distance", type=int, default=None)
    parser.add_argument(
        "--pattern-memory",
        dest="enable_pattern_memory",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Apply remembered decisions to matching groups (default: on).",
    )
    parser.add_argument("--log-level", type=str, default=None, help="Override logging level")
    args = parser.parse_args()

    config = load_config(args)
    configure_logging(config, level_override=args.log_level)
    result, groups_df, summary_df = build(args, config=config)

    out_dir = config.outputs.dir
    out_dir.mkdir(parents=True, exist_ok=True)
    groups_path = out_dir / "duplicate_groups.csv"
    summary_path = out_dir / "duplicate_summary.csv"
    groups_df.to_csv(str(groups_path), index=False, encoding="utf-8", quoting=csv.QUOTE_ALL)
    summary_df.to_csv(str(summary_path), index=False, encoding="utf-8", quoting=csv.QUOTE_ALL)

    logger.info("%s", result.stats.summary)
    logger.info("Saved: %s", groups_path)
    logger.info("Saved: %s", summary_path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
