"""
Comment marker helpers shared by the comment folding rules and the
processing service.
"""

import re

COMMENT_PREFIXES = ("<!--", "//", "/*", "#", "--")
DOCSTRING_PREFIXES = ('"""', "'''")

_HTML_OPEN = re.compile(r'^<!--\s*')
_HTML_CLOSE = re.compile(r'\s*-->$')
_BLOCK_OPEN = re.compile(r'^/\*\s*')
_BLOCK_CLOSE = re.compile(r'\s*\*/$')


def is_comment(line: str, include_docstrings: bool = True) -> bool:
    """True when the trimmed line starts with a comment marker."""
    trimmed = line.strip()
    prefixes = COMMENT_PREFIXES + DOCSTRING_PREFIXES if include_docstrings else COMMENT_PREFIXES
    return trimmed.startswith(prefixes)


def extract_comment_text(line: str) -> str:
    """Strip the comment markers from a comment-only line."""
    trimmed = line.strip()

    if trimmed.startswith("<!--"):
        comment = _HTML_OPEN.sub("", trimmed)
        return _HTML_CLOSE.sub("", comment).strip()

    if trimmed.startswith("//"):
        return trimmed[2:].strip()

    if trimmed.startswith("/*"):
        comment = _BLOCK_OPEN.sub("", trimmed)
        return _BLOCK_CLOSE.sub("", comment).strip()

    if trimmed.startswith("#"):
        return trimmed[1:].strip()

    if trimmed.startswith("--"):
        return trimmed[2:].strip()

    if trimmed.startswith(DOCSTRING_PREFIXES):
        comment = trimmed[3:]
        if comment.endswith(DOCSTRING_PREFIXES):
            comment = comment[:-3]
        return comment.strip()

    return trimmed


def merge_comments(first, second):
    """Join two optional comments with a space."""
    if first and second:
        return f"{first} {second}"
    return first or second
