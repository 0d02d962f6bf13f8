"""Tests for impact token generation."""

import hashlib

import pytest

from ..errors import TokenCollisionError
from ..helpers.token import (
    BASE62_ALPHABET,
    DEFAULT_TOKEN_LENGTH,
    MAX_TOKEN_ATTEMPTS,
    _base62,
    assign_token,
    generate_token,
    is_valid_token,
)


class TestBase62:
    """Tests for the base-62 encoder."""

    @pytest.mark.parametrize("number,expected", [
        (0, "0"),
        (9, "9"),
        (10, "A"),
        (35, "Z"),
        (36, "a"),
        (61, "z"),
        (62, "10"),
        (62 * 62, "100"),
    ])
    def test_known_values(self, number, expected):
        assert _base62(number) == expected

    def test_alphabet_is_62_unique_characters(self):
        assert len(BASE62_ALPHABET) == 62
        assert len(set(BASE62_ALPHABET)) == 62


class TestGenerateToken:
    """Tests for generate_token."""

    def test_deterministic(self):
        assert generate_token("john@example.com") == generate_token("john@example.com")

    def test_default_length(self):
        assert len(generate_token("john@example.com")) == DEFAULT_TOKEN_LENGTH == 12

    @pytest.mark.parametrize("length", [1, 8, 12, 32, 43])
    def test_custom_length(self, length):
        assert len(generate_token("john@example.com", length=length)) == length

    def test_prefix_of_full_encoding(self):
        digest = hashlib.sha256("john@example.com".encode("utf-8")).digest()
        full = _base62(int.from_bytes(digest, "big")).rjust(43, "0")
        assert generate_token("john@example.com") == full[:12]

    def test_only_alphanumeric(self):
        for email in ["a@b.co", "jane.smith+gifts@example.org", "ÜNICODE@example.de"]:
            token = generate_token(email)
            assert all(ch in BASE62_ALPHABET for ch in token)

    def test_different_emails_differ(self):
        assert generate_token("john@example.com") != generate_token("jane@example.com")

    def test_email_used_exactly_as_given(self):
        assert generate_token("John@Example.com") != generate_token("john@example.com")

    def test_attempts_produce_different_tokens(self):
        tokens = {generate_token("john@example.com", attempt=i) for i in range(5)}
        assert len(tokens) == 5

    def test_attempt_salts_with_hash_suffix(self):
        assert generate_token("john@example.com", attempt=2) == generate_token("john@example.com#2")

    def test_negative_attempt_rejected(self):
        with pytest.raises(ValueError):
            generate_token("john@example.com", attempt=-1)

    def test_zero_length_rejected(self):
        with pytest.raises(ValueError):
            generate_token("john@example.com", length=0)


class TestIsValidToken:
    """Tests for token shape checks."""

    def test_generated_token_is_valid(self):
        assert is_valid_token(generate_token("john@example.com"))

    @pytest.mark.parametrize("token", [
        "",
        None,
        "short",
        "abc-def_ghij",
        "abcdefghijk!",
        "abcdefghijklm",
    ])
    def test_invalid_tokens(self, token):
        assert not is_valid_token(token)

    def test_custom_length(self):
        assert is_valid_token("abcdefgh", length=8)
        assert not is_valid_token("abcdefgh")


class TestAssignToken:
    """Tests for collision handling."""

    def test_canonical_token_when_free(self):
        token = assign_token("john@example.com", lambda t: False)
        assert token == generate_token("john@example.com")

    def test_walks_attempts_on_collision(self):
        canonical = generate_token("john@example.com")
        token = assign_token("john@example.com", lambda t: t == canonical)
        assert token == generate_token("john@example.com", attempt=1)

    def test_skips_several_collisions(self):
        taken = {generate_token("john@example.com", attempt=i) for i in range(3)}
        token = assign_token("john@example.com", taken.__contains__)
        assert token == generate_token("john@example.com", attempt=3)

    def test_raises_when_all_attempts_taken(self):
        with pytest.raises(TokenCollisionError, match="john@example.com"):
            assign_token("john@example.com", lambda t: True)

    def test_respects_max_attempts(self):
        calls = []

        def is_taken(token):
            calls.append(token)
            return True

        with pytest.raises(TokenCollisionError):
            assign_token("john@example.com", is_taken, max_attempts=3)
        assert len(calls) == 3

    def test_default_attempt_budget(self):
        calls = []

        def is_taken(token):
            calls.append(token)
            return True

        with pytest.raises(TokenCollisionError):
            assign_token("john@example.com", is_taken)
        assert len(calls) == MAX_TOKEN_ATTEMPTS
