"""Two-line balancing for the greeting printed inside the card."""

from __future__ import annotations

from typing import NamedTuple


SINGLE_LINE_MAX_LENGTH = 30


class MessageLines(NamedTuple):
    first_line: str
    second_line: str
    should_break: bool


def format_message_with_line_break(message: str | None) -> MessageLines:
    """Split ``message`` at the word boundary closest to its character midpoint.

    Messages of 30 characters or fewer stay on one line. A split that would
    leave either line empty is not taken.
    """
    text = str(message or "")
    if len(text) <= SINGLE_LINE_MAX_LENGTH:
        return MessageLines(text, "", False)

    half_length = len(text) // 2
    words = text.split(" ")
    character_count = 0
    split_index = 0

    for i, word in enumerate(words):
        word_length = len(word) + (1 if i > 0 else 0)
        if character_count + word_length >= half_length:
            before_split = character_count
            after_split = character_count + word_length
            if abs(half_length - before_split) <= abs(half_length - after_split):
                split_index = i
            else:
                split_index = i + 1
            break
        character_count += word_length

    if 0 < split_index < len(words):
        return MessageLines(" ".join(words[:split_index]), " ".join(words[split_index:]), True)

    return MessageLines(text, "", False)
