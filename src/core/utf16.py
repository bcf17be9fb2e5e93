"""UTF-16 offset helpers.

Telegram addresses entities in UTF-16 code units while Python strings index
by codepoint, so anything outside the BMP shifts every later offset.
"""

from __future__ import annotations


def _code_units(char: str) -> int:
    return 2 if ord(char) > 0xFFFF else 1


def slice_by_utf16(text: str, offset: int, length: int) -> str:
    """Return the substring addressed by a UTF-16 (offset, length) pair.

    Out-of-range values clamp to the text instead of raising. An offset that
    lands inside a surrogate pair starts at the next whole codepoint.
    """

    offset = max(offset, 0)
    end = offset + max(length, 0)

    start_index = None
    end_index = None
    units = 0
    for index, char in enumerate(text):
        if start_index is None and units >= offset:
            start_index = index
        if units >= end:
            end_index = index
            break
        units += _code_units(char)

    if start_index is None:
        start_index = len(text)
    if end_index is None:
        end_index = len(text)
    return text[start_index:end_index]
