"""Identifier hashing, masking and classification."""

from __future__ import annotations

import pytest

from signalboard.utils.identifiers import (
    hash_identifier,
    identifier_kind,
    mask_first_name,
    mask_identifier,
    normalize_identifier,
)


@pytest.mark.parametrize(
    "raw",
    ["+1 (555) 123-4567", "15551234567", " +1 555 123 4567 ", "1.555.123.4567"],
)
def test_phone_formats_share_a_hash(raw):
    assert hash_identifier(raw) == hash_identifier("+15551234567")


def test_handle_normalization_ignores_case_and_at_sign():
    assert normalize_identifier("  @Jay.Dee ") == "jay.dee"
    assert hash_identifier("@JAY.DEE") == hash_identifier("jay.dee")


def test_hash_is_sha256_hex():
    digest = hash_identifier("@someone")
    assert len(digest) == 64
    assert all(ch in "0123456789abcdef" for ch in digest)


def test_different_identifiers_hash_differently():
    assert hash_identifier("@someone") != hash_identifier("@someone_else")


def test_mask_phone_keeps_last_four():
    assert mask_identifier("+1 (555) 123-4567") == "***-***-4567"


def test_mask_handle():
    assert mask_identifier("@jaydee") == "@ja***ee"
    assert mask_identifier("@jay") == "@j***"


def test_mask_never_contains_full_identifier():
    for raw in ("+1 (555) 123-4567", "@jaydee", "someone.here"):
        assert raw not in mask_identifier(raw)


@pytest.mark.parametrize(
    "raw, kind",
    [
        ("+1 (555) 123-4567", "phone"),
        ("5551234567", "phone"),
        ("@jay.dee", "handle"),
        ("jay_dee", "handle"),
        ("123", "handle"),
        ("not a handle!", None),
        ("@" + "a" * 31, None),
    ],
)
def test_identifier_kind(raw, kind):
    assert identifier_kind(raw) == kind


def test_mask_first_name():
    assert mask_first_name("jordan") == "J***"
    assert mask_first_name("  ") == "***"
