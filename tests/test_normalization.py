import pytest

from contact_dedupe.models import Address, ContactRecord, Email, Phone
from contact_dedupe.normalization import (
    email_domain,
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


def test_normalize_name_strips_punctuation_and_initials():
    assert normalize_name("John Q. Public") == "john public"
    assert normalize_name("  Mary   Ann ") == "mary ann"
    assert normalize_name("O'Brien") == "obrien"
    assert normalize_name("J. Smith") == "j smith"
    assert normalize_name(None) == ""
    assert normalize_name("...") == ""


def test_normalize_full_name_normalizes_each_component():
    assert normalize_full_name("John", "Q.", "Smith") == "john q smith"
    assert normalize_full_name("John", None, "Smith") == "john smith"
    assert normalize_full_name(None, "", None) == ""


def test_normalize_email_gmail_dots_and_case():
    assert normalize_email("John.Smith@Gmail.com ") == "johnsmith@gmail.com"
    assert normalize_email("first.last@googlemail.com") == "firstlast@googlemail.com"
    assert normalize_email("john.smith@company.com") == "john.smith@company.com"
    assert normalize_email("") == ""
    assert normalize_email(None) == ""


def test_email_domain():
    assert email_domain("john@Company.COM") == "company.com"
    assert email_domain("not-an-email") == ""
    assert email_domain(None) == ""


def test_normalize_phone_keeps_leading_plus_only():
    assert normalize_phone("+1 (555) 123-4567") == "+15551234567"
    assert normalize_phone("555-123-4567") == "5551234567"
    assert normalize_phone("1+2") == "12"
    assert normalize_phone("+") == ""
    assert normalize_phone("call me") == ""
    assert normalize_phone(None) == ""


def test_normalize_organization_strips_one_legal_suffix():
    assert normalize_organization("Acme Inc.") == "acme"
    assert normalize_organization("Globex Corporation") == "globex"
    assert normalize_organization("  Initech LLC ") == "initech"
    assert normalize_organization("Hooli Ltd") == "hooli"
    assert normalize_organization("Umbrella Co.") == "umbrella"
    assert normalize_organization("Inc") == "inc"
    assert normalize_organization(None) == ""


def test_normalize_organization_strips_only_the_last_of_stacked_suffixes():
    assert normalize_organization("Toyota Motor Co Ltd") == "toyota motor co"
    assert normalize_organization("Toyota Motor Co") == "toyota motor"
    # A second pass strips the remaining suffix, so stacked suffixes are not a fixed point.
    assert normalize_organization(normalize_organization("Toyota Motor Co Ltd")) == "toyota motor"


def test_normalize_address_skips_missing_parts():
    assert (
        normalize_address(" 1 Main St ", "Springfield", None, "12345", "USA")
        == "1 main st springfield 12345 usa"
    )
    assert normalize_address() == ""


def test_levenshtein():
    assert levenshtein("kitten", "sitting") == 3
    assert levenshtein("", "abc") == 3
    assert levenshtein("abc", "") == 3
    assert levenshtein("abc", "abc") == 0
    assert levenshtein("flaw", "lawn") == 2


def test_names_similar():
    assert names_similar("Jon Smith", "John Smith") is True
    assert names_similar("Smith", "Smyth") is True
    assert names_similar("JOHN SMITH", "john smith", max_distance=0) is True
    assert names_similar("Jon", "John", max_distance=0) is False
    assert names_similar("Alice", "Bob") is False
    assert names_similar("", "") is False
    assert names_similar(None, "John") is False


@pytest.mark.parametrize(
    "normalizer,value",
    [
        (normalize_email, "John.Smith@Gmail.com"),
        (normalize_email, "Someone@Example.org"),
        (normalize_phone, "+1 (555) 123-4567"),
        (normalize_phone, "555.123.4567"),
        (normalize_organization, "Acme Incorporated"),
        (normalize_name, "John Q. Public"),
    ],
)
def test_normalizers_reach_a_fixed_point(normalizer, value):
    once = normalizer(value)
    assert normalizer(once) == once


def test_normalize_address_fixed_point():
    once = normalize_address("1 Main St", "Springfield", "IL", "62701", "US")
    assert normalize_address(once) == once


def test_normalized_view_uses_first_address_and_sets():
    record = ContactRecord(
        given_name="John",
        family_name="Smith",
        organization="Acme Inc",
        emails=[Email("John.Smith@gmail.com"), Email("johnsmith@gmail.com", "home")],
        phones=[Phone("+1 555 123 4567"), Phone("n/a")],
        addresses=[
            Address(street="1 Main St", city="Springfield"),
            Address(street="9 Other Rd", city="Shelbyville"),
        ],
    )
    view = normalized_view(record)
    assert view.full_name == "john smith"
    assert view.given_name == "john"
    assert view.family_name == "smith"
    assert view.emails == frozenset({"johnsmith@gmail.com"})
    assert view.phones == frozenset({"+15551234567"})
    assert view.organization == "acme"
    assert view.address == "1 main st springfield"
    assert view.has_name and view.has_contact and not view.is_empty


def test_normalized_view_of_empty_record():
    view = normalized_view(ContactRecord())
    assert view.is_empty
    assert not view.has_contact
    assert view.address == ""
