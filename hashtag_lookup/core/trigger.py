from __future__ import annotations

import re
from dataclasses import dataclass

from hashtag_lookup.config import settings

# Indented code, inline code, fenced block, [code] BBCode block.
CODE_BLOCKS_PATTERN = re.compile(
    r"^(?:    |\t).*|`[^`]+`|^```[\s\S]*?^```|\[code\][\s\S]*?\[/code\]",
    re.MULTILINE,
)
# Same shapes, without requiring the closing delimiter.
OPEN_CODE_BLOCKS_PATTERN = re.compile(
    r"^(?:    |\t).*|`[^`]+|^```[\s\S]*|\[code\][\s\S]*",
    re.MULTILINE,
)

HEADING_MAX_COL = 6


@dataclass(frozen=True, slots=True)
class TriggerContext:
    """Editor state at the moment a key was pressed.

    ``cursor_row`` and ``cursor_col`` are zero-based.
    """

    text: str
    cursor_row: int
    cursor_col: int
    is_backspace: bool = False

    @classmethod
    def from_caret(cls, text: str, caret: int, *, is_backspace: bool = False) -> TriggerContext:
        row, col = caret_row_col(text, caret)
        return cls(text=text, cursor_row=row, cursor_col=col, is_backspace=is_backspace)

    @property
    def caret(self) -> int:
        lines = self.text.split("\n")
        offset = sum(len(line) + 1 for line in lines[: self.cursor_row])
        return min(offset + self.cursor_col, len(self.text))


def caret_row_col(text: str, caret: int) -> tuple[int, int]:
    caret = max(0, min(caret, len(text)))
    rows = text[:caret].split("\n")
    return len(rows) - 1, len(rows[-1])


def in_code_block(text: str, pos: int) -> bool:
    end = 0
    for match in CODE_BLOCKS_PATTERN.finditer(text):
        end = match.end()
        if match.start() <= pos <= end:
            return True

    # The caret may sit inside a block that was opened but never closed.
    tail = OPEN_CODE_BLOCKS_PATTERN.search(text, end)
    return tail is not None and tail.start() <= pos


def should_trigger(context: TriggerContext, *, trigger_char: str | None = None) -> bool:
    """Decide whether the autocomplete popup may open at the cursor."""
    char = trigger_char or settings.hashtag_trigger_char
    lines = context.text.split("\n")
    line = lines[context.cursor_row] if 0 <= context.cursor_row < len(lines) else ""
    col = context.cursor_col

    if context.is_backspace:
        col -= 1
        line = line[:-1]

        # Backspacing into a finished reference: "#category |" -> "#category|"
        if re.match(rf"^{re.escape(char)}\w+", line):
            return False

    # Markdown ATX heading markers ("##", "###"...)
    if 0 < col < HEADING_MAX_COL and line[:col] == char * col:
        return False

    if in_code_block(context.text, context.caret):
        return False

    return True
