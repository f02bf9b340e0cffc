"""Split submitted text into independently processed segments."""

import re

_PARAGRAPH_BREAK = re.compile(r"\n[ \t\r\f\v]*\n")


def split_segments(text: str, strategy: str = "single") -> list[str]:
    """Split ``text`` into segments according to ``strategy``.

    ``single`` keeps the whole text as one segment; ``paragraph`` splits on
    blank lines. Whitespace-only segments are dropped, so an empty text has
    no segments at all.

    Raises:
        ValueError: If ``strategy`` is not a known strategy.
    """
    if strategy == "single":
        segments = [text]
    elif strategy == "paragraph":
        segments = _PARAGRAPH_BREAK.split(text)
    else:
        raise ValueError(f"Unknown segment strategy: {strategy}")
    return [segment for segment in segments if segment.strip()]
