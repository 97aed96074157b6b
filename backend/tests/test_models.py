"""
Tests for subscriber value types in models.py.
"""
import uuid

import pytest

from models import NewSubscriber, SubscriberEmail, SubscriberName, SubscriberValidationError


class TestSubscriberName:
    """Unit tests for SubscriberName.parse."""

    def test_valid_name_is_parsed(self):
        assert SubscriberName.parse("Ursula Le Guin") == "Ursula Le Guin"

    def test_surrounding_whitespace_is_trimmed(self):
        assert SubscriberName.parse("  le guin  ") == "le guin"

    def test_256_character_name_is_valid(self):
        assert SubscriberName.parse("a" * 256) == "a" * 256

    def test_256_multibyte_characters_are_valid(self):
        """Length is counted in characters, not bytes."""
        name = "ё" * 256
        assert SubscriberName.parse(name) == name

    def test_length_is_counted_after_nfc_normalization(self):
        """A decomposed e + combining acute accent composes to one code point."""
        name = "e\u0301" * 256
        assert SubscriberName.parse(name) == "\u00e9" * 256

    def test_emoji_sequence_counts_each_code_point(self):
        family = "\U0001F469\u200D\U0001F469\u200D\U0001F467"
        assert len(SubscriberName.parse(family * 51)) == 255
        with pytest.raises(SubscriberValidationError):
            SubscriberName.parse(family * 52)

    def test_name_longer_than_256_characters_is_rejected(self):
        with pytest.raises(SubscriberValidationError) as exc_info:
            SubscriberName.parse("a" * 257)
        assert exc_info.value.field == "name"

    @pytest.mark.parametrize("raw", ["", " ", "\t\n  "])
    def test_empty_or_whitespace_only_name_is_rejected(self, raw):
        with pytest.raises(SubscriberValidationError):
            SubscriberName.parse(raw)

    def test_missing_name_is_rejected(self):
        with pytest.raises(SubscriberValidationError) as exc_info:
            SubscriberName.parse(None)
        assert exc_info.value.field == "name"

    @pytest.mark.parametrize("forbidden", ["/", "(", ")", '"', "<", ">", "\\", "{", "}"])
    def test_names_with_forbidden_characters_are_rejected(self, forbidden):
        with pytest.raises(SubscriberValidationError):
            SubscriberName.parse(f"Ursula{forbidden}")

    def test_control_characters_are_rejected(self):
        with pytest.raises(SubscriberValidationError):
            SubscriberName.parse("Ursula\x00Le Guin")

    def test_apostrophes_and_accents_are_allowed(self):
        assert SubscriberName.parse("José-María O'Connor") == "José-María O'Connor"


class TestSubscriberEmail:
    """Unit tests for SubscriberEmail.parse."""

    def test_valid_email_is_parsed(self):
        assert SubscriberEmail.parse("ursula_le_guin@gmail.com") == "ursula_le_guin@gmail.com"

    def test_email_is_lower_cased_and_trimmed(self):
        assert SubscriberEmail.parse("  Ursula@Gmail.COM ") == "ursula@gmail.com"

    def test_plus_addressing_is_allowed(self):
        assert SubscriberEmail.parse("ursula+news@gmail.com") == "ursula+news@gmail.com"

    @pytest.mark.parametrize("raw", ["", "   ", None])
    def test_empty_email_is_rejected(self, raw):
        with pytest.raises(SubscriberValidationError) as exc_info:
            SubscriberEmail.parse(raw)
        assert exc_info.value.field == "email"

    @pytest.mark.parametrize("raw", [
        "ursuladomain.com",
        "@domain.com",
        "ursula@",
        "ursula@@domain.com",
        "definitely-not-an-email",
    ])
    def test_email_without_local_part_and_domain_is_rejected(self, raw):
        with pytest.raises(SubscriberValidationError) as exc_info:
            SubscriberEmail.parse(raw)
        assert exc_info.value.field == "email"


class TestNewSubscriber:
    """Unit tests for NewSubscriber.from_form."""

    def test_from_form_parses_both_fields(self):
        subscriber = NewSubscriber.from_form(name="le guin", email="ursula_le_guin@gmail.com")

        assert subscriber.name == "le guin"
        assert subscriber.email == "ursula_le_guin@gmail.com"
        assert isinstance(subscriber.id, uuid.UUID)
        assert subscriber.subscribed_at.tzinfo is not None

    def test_each_new_subscriber_gets_its_own_id(self):
        first = NewSubscriber.from_form(name="le guin", email="ursula_le_guin@gmail.com")
        second = NewSubscriber.from_form(name="le guin", email="ursula_le_guin@gmail.com")
        assert first.id != second.id

    def test_from_form_reports_bad_email(self):
        with pytest.raises(SubscriberValidationError) as exc_info:
            NewSubscriber.from_form(name="le guin", email="not-an-email")
        assert exc_info.value.field == "email"

    def test_from_form_reports_missing_name(self):
        with pytest.raises(SubscriberValidationError) as exc_info:
            NewSubscriber.from_form(name=None, email="ursula_le_guin@gmail.com")
        assert exc_info.value.field == "name"
