import pytest

from contact_dedupe.config_loader import DedupeConfig
from contact_dedupe.deduplicator import ContactDeduplicator, SyncMode
from contact_dedupe.dedupe_models import (
    DeduplicationResult,
    DeduplicationStats,
    DuplicateDecision,
    DuplicateGroupType,
    GroupClassification,
)
from contact_dedupe.models import ContactRecord, Email, Phone
from contact_dedupe.pattern_store import InMemoryPatternStore
from contact_dedupe.policy import pattern_signature


def _contact(record_id, given, family, emails=(), phones=(), **kwargs):
    return ContactRecord(
        id=record_id,
        given_name=given,
        family_name=family,
        emails=[Email(value) for value in emails],
        phones=[Phone(value) for value in phones],
        **kwargs,
    )


@pytest.fixture
def sources():
    records_a = [
        _contact(
            "a1",
            "John",
            "Smith",
            emails=["john@acme.com"],
            phones=["+15550001111"],
            organization="Acme Inc",
            source_id_a="g1",
        ),
        _contact("a2", "Jon", "Smith", emails=["john@acme.com"], source_id_a="g2"),
        _contact("a3", "Mary", "Major", emails=["mary@example.com"]),
    ]
    records_b = [
        _contact(
            "b1",
            "John",
            "Smith",
            emails=["john@acme.com"],
            phones=["+1 555 000 1111"],
            organization="Acme Inc",
            source_id_b="m1",
        ),
        _contact("b2", "Zed", "Zulu", phones=["999"], source_id_b="m2"),
    ]
    return records_a, records_b


def _ids(group):
    return tuple(c.record.id for c in group.candidates)


def test_detect_duplicates_end_to_end(sources):
    result = ContactDeduplicator().detect_duplicates(*sources)

    assert [(g.group_type, _ids(g), g.match_score) for g in result.groups] == [
        (DuplicateGroupType.ACROSS_SOURCES, ("a1", "b1"), 160),
        (DuplicateGroupType.ACROSS_SOURCES, ("a2", "b1"), 80),
        (DuplicateGroupType.WITHIN_SOURCE_A, ("a1", "a2"), 80),
    ]
    assert [g.classification for g in result.groups] == [
        GroupClassification.AUTO_MERGE,
        GroupClassification.NEEDS_CONFIRMATION,
        GroupClassification.NEEDS_CONFIRMATION,
    ]

    stats = result.stats
    assert stats.total_contacts_scanned == 5
    assert stats.duplicate_groups_found == 3
    assert stats.auto_merge_groups == 1
    assert stats.user_confirmation_groups == 3
    assert stats.separate_groups == 0
    assert stats.scan_duration >= 0
    assert result.errors == []
    assert result.needs_user_confirmation
    assert result.auto_merge_groups == []


def test_existing_links_suppress_cross_source_groups(sources):
    result = ContactDeduplicator().detect_duplicates(*sources, existing_links=[("g1", "m1")])
    assert [_ids(g) for g in result.groups] == [("a2", "b1"), ("a1", "a2")]


def test_remembered_merge_decision_is_applied_on_next_scan(sources):
    store = InMemoryPatternStore()
    first = ContactDeduplicator(pattern_store=store).detect_duplicates(*sources)
    safe_group = first.groups[0]
    signature = ContactDeduplicator(pattern_store=store).record_user_decision(
        DuplicateDecision.MERGE, safe_group, remember_pattern=True
    )
    assert signature == pattern_signature(safe_group)

    second = ContactDeduplicator(pattern_store=store).detect_duplicates(*sources)
    assert [_ids(g) for g in second.auto_merge_groups] == [("a1", "b1")]
    assert second.stats.user_confirmation_groups == 2


def test_apply_decisions_merges_and_remembers(sources):
    store = InMemoryPatternStore()
    deduplicator = ContactDeduplicator(pattern_store=store)
    result = deduplicator.detect_duplicates(*sources)
    across_similar = result.groups[1]

    merged = deduplicator.apply_decisions(
        result,
        {across_similar.id: DuplicateDecision.MERGE, "no-such-group": DuplicateDecision.SKIP},
        remember_patterns=[across_similar.id],
    )

    assert list(merged) == [across_similar.id]
    record = merged[across_similar.id]
    assert record.id == "a2"
    assert record.given_name == "Jon"
    assert record.organization == "Acme Inc"
    assert [e.value for e in record.emails] == ["john@acme.com"]
    assert result.stats.total_merged_contacts == 2
    assert store.get(pattern_signature(across_similar)) is DuplicateDecision.MERGE


def test_apply_safe_merges_only_touches_auto_merge_groups(sources):
    deduplicator = ContactDeduplicator()
    result = deduplicator.detect_duplicates(*sources)

    merged = deduplicator.apply_safe_merges(result)

    assert list(merged) == [result.groups[0].id]
    assert result.groups[0].user_decision is DuplicateDecision.MERGE
    assert [g.user_decision for g in result.groups[1:]] == [None, None]
    assert merged[result.groups[0].id].phones == [Phone("+15550001111"), Phone("+1 555 000 1111")]
    assert result.auto_merge_groups == [result.groups[0]]


def test_sync_waits_for_confirmation(sources):
    deduplicator = ContactDeduplicator()
    result = deduplicator.detect_duplicates(*sources)

    assert deduplicator.should_proceed_with_sync(result, SyncMode.MANUAL) is False
    assert deduplicator.should_proceed_with_sync(result, SyncMode.AUTOMATIC) is False

    deduplicator.apply_safe_merges(result)
    for group in result.groups[1:]:
        deduplicator.record_user_decision(DuplicateDecision.KEEP_SEPARATE, group)
    assert deduplicator.should_proceed_with_sync(result, SyncMode.AUTOMATIC) is True


def test_sync_proceeds_without_duplicates():
    result = DeduplicationResult(stats=DeduplicationStats(), groups=[])
    assert ContactDeduplicator().should_proceed_with_sync(result, SyncMode.AUTOMATIC) is True


def test_facade_scoring_and_preview(sources):
    records_a, records_b = sources
    deduplicator = ContactDeduplicator()
    assert deduplicator.calculate_match_score(records_a[0], records_b[0]).total_score == 160

    result = deduplicator.detect_duplicates(records_a, records_b)
    within = result.groups[2]
    preview = deduplicator.generate_merge_preview(within)
    assert [c.field_name for c in preview.critical_conflicts] == ["First Name"]
    assert deduplicator.is_safe_to_auto_merge(within) is False
    assert deduplicator.is_safe_to_auto_merge(result.groups[0]) is True


def test_raised_confirmation_threshold_drops_weaker_groups(sources):
    config = DedupeConfig(auto_merge_threshold=150, confirmation_threshold=100)
    result = ContactDeduplicator(config).detect_duplicates(*sources)
    assert [_ids(g) for g in result.groups] == [("a1", "b1")]
    assert result.groups[0].classification is GroupClassification.AUTO_MERGE


@pytest.mark.parametrize(
    "kwargs",
    [
        {"auto_merge_threshold": -1},
        {"confirmation_threshold": -5},
        {"auto_merge_threshold": 40, "confirmation_threshold": 50},
        {"max_auto_merge_group_size": 1},
        {"max_name_distance": -1},
    ],
)
def test_invalid_config_is_rejected(kwargs):
    with pytest.raises(ValueError):
        DedupeConfig(**kwargs)
