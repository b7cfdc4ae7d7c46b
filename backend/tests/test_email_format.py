"""
Tests for email format and disposable provider checks.
"""

import pytest

from disposable import are_disposable_domains_loaded, is_disposable_domain, preload_disposable_domains
from email_format import is_valid_email_format, split_email


class TestEmailFormat:
    """Test syntactic email validation."""

    @pytest.mark.parametrize(
        "email",
        [
            "user@example.com",
            "first.last@example.co.uk",
            "user+tag@sub.example.org",
            "o'brien@example.ie",
            "user@knowndisposable.test",
            "user@xn--bcher-kva.example",
            "a@b.io",
        ],
    )
    def test_valid_addresses(self, email) -> None:
        assert is_valid_email_format(email) is True

    @pytest.mark.parametrize(
        "email",
        [
            "not-an-email",
            "",
            "@example.com",
            "user@",
            "user@localhost",
            "user@@example.com",
            ".user@example.com",
            "user.@example.com",
            "us..er@example.com",
            "user@-example.com",
            "user@example-.com",
            "user@example.c",
            "user@example.123",
            " user@example.com",
            "user@example.com ",
            "user name@example.com",
            "x" * 65 + "@example.com",
            "user@" + "a" * 250 + ".com",
        ],
    )
    def test_invalid_addresses(self, email) -> None:
        assert is_valid_email_format(email) is False

    @pytest.mark.parametrize("value", [None, 42, b"user@example.com", ["user@example.com"]])
    def test_non_strings_are_invalid(self, value) -> None:
        assert is_valid_email_format(value) is False

    def test_split_at_last_at_sign(self) -> None:
        assert split_email("user@example.com") == ("user", "example.com")
        assert split_email("a@b@example.com") == ("a@b", "example.com")


class TestDisposableDomains:
    """Test disposable provider membership."""

    @pytest.mark.parametrize("domain", ["mailinator.com", "yopmail.com", "10minutemail.com"])
    def test_known_providers(self, domain) -> None:
        assert is_disposable_domain(domain) is True

    def test_case_and_trailing_dot_insensitive(self) -> None:
        assert is_disposable_domain("MAILINATOR.com") is True
        assert is_disposable_domain("mailinator.com.") is True

    @pytest.mark.parametrize("domain", ["gmail.com", "example.com", "mailinator.com.evil.org"])
    def test_regular_domains(self, domain) -> None:
        assert is_disposable_domain(domain) is False

    @pytest.mark.parametrize("value", ["", None, 123])
    def test_bad_input_returns_false(self, value) -> None:
        assert is_disposable_domain(value) is False

    def test_preload(self) -> None:
        preload_disposable_domains()
        assert are_disposable_domains_loaded() is True
