"""Head/tail output truncation for oversized command streams."""

from __future__ import annotations

MAX_OUTPUT_LENGTH = 30000


def truncate_output(content: str, max_length: int = MAX_OUTPUT_LENGTH) -> str:
    """Keep the first and last half of the budget and report elided middle lines."""
    if len(content) <= max_length:
        return content
    half_length = max_length // 2
    start = content[:half_length]
    end = content[len(content) - half_length:]
    truncated_lines = count_lines(content[half_length:len(content) - half_length])
    return f"{start}\n\n... [{truncated_lines} lines truncated] ...\n\n{end}"


def count_lines(text: str) -> int:
    """Count newline-delimited lines; empty text has none."""
    if not text:
        return 0
    return text.count("\n") + 1
