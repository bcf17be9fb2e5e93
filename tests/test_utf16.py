from __future__ import annotations

from core.utf16 import slice_by_utf16


def test_slices_around_surrogate_pair() -> None:
    text = "a😊b"  # the emoji takes two UTF-16 code units

    assert slice_by_utf16(text, 0, 1) == "a"
    assert slice_by_utf16(text, 1, 2) == "😊"
    assert slice_by_utf16(text, 3, 1) == "b"


def test_ascii_after_astral_codepoint() -> None:
    text = "😊 https://example.com"

    assert slice_by_utf16(text, 3, 19) == "https://example.com"


def test_out_of_range_values_clamp() -> None:
    text = "hello"

    assert slice_by_utf16(text, 10, 3) == ""
    assert slice_by_utf16(text, 3, 100) == "lo"
    assert slice_by_utf16(text, -2, 2) == "he"
    assert slice_by_utf16(text, 1, -5) == ""
