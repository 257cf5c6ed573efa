"""Tests for contact extraction."""

import pytest

from resume_intake.core.contact_parser import extract_contact, split_name
from resume_intake.core.extraction_rules import normalize_phone

CONTACT = """John Smith
john.smith@email.com
(555) 123-4567
San Francisco, CA
linkedin.com/in/johnsmith
https://johnsmith.dev"""


def test_all_contact_fields_extracted():
    result = extract_contact(CONTACT, CONTACT)
    contact = result.data
    assert contact.first_name == "John"
    assert contact.last_name == "Smith"
    assert contact.email == "john.smith@email.com"
    assert contact.phone == "(555) 123-4567"
    assert contact.city == "San Francisco"
    assert contact.state == "CA"
    assert contact.linkedin == "linkedin.com/in/johnsmith"
    assert contact.website == "https://johnsmith.dev"
    assert result.warnings == []
    assert result.confidence == 1.0
    assert result.source == "contact"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("555.123.4567", "(555) 123-4567"),
        ("555-123-4567", "(555) 123-4567"),
        ("(555) 123-4567", "(555) 123-4567"),
        ("+1 555 123 4567", "(555) 123-4567"),
        ("+44 20 7946 0018", "+44 20 7946 0018"),
    ],
)
def test_phone_normalization(raw, expected):
    assert normalize_phone(raw) == expected


def test_dotted_phone_found_and_normalized():
    result = extract_contact("Jane Doe\njane@example.com\n555.123.4567")
    assert result.data.phone == "(555) 123-4567"


def test_international_phone_kept_as_written():
    result = extract_contact("Jane Doe\njane@example.com\n+44 20 7946 0018")
    assert result.data.phone == "+44 20 7946 0018"


def test_labelled_email_with_spaces():
    result = extract_contact("Jane Doe\nEmail: jane.doe @ example . com")
    assert result.data.email == "jane.doe@example.com"


def test_missing_fields_produce_warnings():
    result = extract_contact("Jane Doe\nSan Francisco, CA")
    assert "No email address found" in result.warnings
    assert "No phone number found" in result.warnings
    assert result.data.email == ""
    assert result.confidence < 0.5


def test_header_words_are_not_names():
    result = extract_contact("PROFESSIONAL SUMMARY\nSoftware Engineer\njane@example.com")
    assert result.data.first_name == ""
    assert "No name found" in result.warnings


def test_all_caps_name_title_cased():
    result = extract_contact("JANE DOE\njane@example.com")
    assert (result.data.first_name, result.data.last_name) == ("Jane", "Doe")


def test_falls_back_to_full_text_without_contact_span():
    text = "Jane Doe\njane@example.com\n\nEXPERIENCE\nData Engineer at Globex Corp"
    result = extract_contact(text, None)
    assert result.data.email == "jane@example.com"
    assert result.source == "full-text"


def test_name_only_searched_near_the_top():
    text = "jane@example.com\n" + ("x " * 300) + "\nJane Doe"
    result = extract_contact(text)
    assert result.data.first_name == ""


def test_state_name_location():
    result = extract_contact("Jane Doe\nAustin, Texas\njane@example.com")
    assert result.data.city == "Austin"
    assert result.data.state == "Texas"


def test_split_name():
    assert split_name("Mary Jane Watson") == ("Mary", "Jane Watson")
    assert split_name("") == ("", "")
