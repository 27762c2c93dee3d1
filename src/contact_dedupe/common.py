from __future__ import annotations

import json
import logging
import os
from typing import Any, List, Optional, Tuple

from .config_loader import DedupeConfig, PipelineConfig, load_pipeline_config
from .models import Address, Birthday, ContactRecord, Email, Phone, Url
from .normalization import (
    NormalizedView,
    levenshtein,
    names_similar,
    normalize_address,
    normalize_email,
    normalize_full_name,
    normalize_name,
    normalize_organization,
    normalize_phone,
    normalized_view,
)

logger = logging.getLogger(__name__)

__all__ = [
    "Address",
    "Birthday",
    "ContactRecord",
    "DedupeConfig",
    "Email",
    "NormalizedView",
    "Phone",
    "PipelineConfig",
    "Url",
    "ensure_contact_record",
    "levenshtein",
    "load_config",
    "load_links_json",
    "load_records_json",
    "names_similar",
    "normalize_address",
    "normalize_email",
    "normalize_full_name",
    "normalize_name",
    "normalize_organization",
    "normalize_phone",
    "normalized_view",
    "warn_missing",
]


def load_config(args: Any) -> PipelineConfig:
    return load_pipeline_config(args)


def warn_missing(path: Optional[str], label: str) -> bool:
    if not path or not os.path.exists(path):
        logger.warning("%s path missing: %s", label, path)
        return True
    return False


def ensure_contact_record(obj: Any) -> ContactRecord:
    if isinstance(obj, ContactRecord):
        return obj
    if isinstance(obj, dict):
        return ContactRecord.from_mapping(obj)
    raise TypeError(f"Unsupported contact payload type: {type(obj)!r}")


def load_records_json(path: Optional[str], label: str) -> List[Any]:
    """
    Read a JSON list of record mappings.

    Entries are returned as-is; conversion happens during detection so that a
    single malformed entry is reported instead of failing the whole file.
    """
    if warn_missing(path, label):
        return []
    with open(path, "r", encoding="utf-8") as handle:  # type: ignore[arg-type]
        payload = json.load(handle)
    if not isinstance(payload, list):
        raise ValueError(f"{label} must contain a JSON list, got {type(payload).__name__}")
    return payload


def load_links_json(path: Optional[str]) -> List[Tuple[str, str]]:
    """Existing cross-source links as ``[[source_id_a, source_id_b], ...]`` or mappings."""
    if not path:
        return []
    if warn_missing(path, "links JSON"):
        return []
    with open(path, "r", encoding="utf-8") as handle:
        payload = json.load(handle)
    links: List[Tuple[str, str]] = []
    for entry in payload:
        if isinstance(entry, dict):
            links.append((str(entry["source_id_a"]), str(entry["source_id_b"])))
        else:
            key_a, key_b = entry
            links.append((str(key_a), str(key_b)))
    return links

