"""
Text cleanup applied before any text reaches a speech backend.

This is a conservative, lossy pass meant to keep markup out of spoken
output. It is not a markdown parser: nested emphasis or malformed links
may not come out perfectly.
"""

import re

# Order matters: bold markers must go before single asterisks, and the
# link rewrite runs after emphasis/code markers are gone.
_ANGLE_BRACKETS = re.compile(r"[<>]")
_BOLD = re.compile(r"\*\*")
_ITALIC = re.compile(r"\*")
_CODE = re.compile(r"`")
_HEADING = re.compile(r"#{1,6}\s")
_LINK = re.compile(r"\[([^\]]+)\]\([^)]+\)")


def clean_text(text: str) -> str:
    """Strip markup and markdown decoration so text can be vocalized.

    Args:
        text: Arbitrary natural-language or markdown text.

    Returns:
        The cleaned text, possibly empty. Never raises.
    """
    if not text:
        return ""

    cleaned = _ANGLE_BRACKETS.sub("", text)
    cleaned = _BOLD.sub("", cleaned)
    cleaned = _ITALIC.sub("", cleaned)
    cleaned = _CODE.sub("", cleaned)
    cleaned = _HEADING.sub("", cleaned)
    cleaned = _LINK.sub(r"\1", cleaned)
    return cleaned.strip()


__all__ = ["clean_text"]
