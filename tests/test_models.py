from datetime import datetime, timezone

from contact_dedupe.models import Birthday, ContactRecord, Email, Phone


def _base(**overrides):
    values = dict(
        given_name="Ann",
        family_name="Lee",
        organization="Lee LLC",
        emails=[Email("ann@lee.org", "work")],
        phones=[Phone("+15550001111")],
        birthday=Birthday(month=4, day=2),
        note="vip",
    )
    values.update(overrides)
    return ContactRecord(**values)


def test_content_equality_ignores_ids_photo_and_timestamps():
    a = _base(id="x", source_id_a="g1", photo=b"1")
    b = _base(
        id="y",
        source_id_b="m1",
        photo=b"2",
        last_modified=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    assert a.content_equals(b)
    assert b.content_equals(a)
    assert a != b


def test_content_equality_sees_labels_and_notes():
    a = _base()
    assert not a.content_equals(_base(emails=[Email("ann@lee.org", "home")]))
    assert not a.content_equals(_base(emails=[Email("ann@lee.org", "work"), Email("a@x.com")]))
    assert not a.content_equals(_base(note="met at expo"))
    assert not a.content_equals(_base(birthday=None))


def test_display_name_falls_back_to_email_then_placeholder():
    assert _base(prefix="Dr.").display_name == "Dr. Ann Lee"
    assert ContactRecord(emails=[Email("x@y.com")]).display_name == "x@y.com"
    assert ContactRecord().display_name == "Unknown Contact"


def test_from_mapping_blanks_become_none():
    record = ContactRecord.from_mapping(
        {"given_name": "  ", "address": None, "addresses": [{"street": "1 Main", "state": "IL"}]}
    )
    assert record.given_name is None
    assert record.addresses[0].region == "IL"
    assert record.id
