"""Leading doc-comment extraction for JavaScript/TypeScript sources.

Only the trivia in front of the first statement matters for module
annotations, so instead of a full parser this module lexes the file's
leading whitespace, hashbang line, ``//`` line comments and ``/* */``
block comments, and stops at the first real token.

The *module doc comment* is:

* the first ``/** ... */`` block among the comments leading the first
  statement, or
* when the file has no statements at all, a ``/** ... */`` block at the
  very start of the file.

A tag's value is the single word that follows it on the same line, if
any. Everything after that word is ignored.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Optional

from utc.exceptions import DocCommentError

_TAG_RE = re.compile(r"(?<![\w@])@([A-Za-z][\w-]*)(?:[ \t]+([^\s*@][^\s*]*))?")


@dataclass
class DocComment:
    """A parsed ``/** ... */`` block.

    Attributes:
        text: The raw comment text including delimiters.
        tags: ``(name, value)`` pairs in source order; ``value`` is the
            first token after the tag on the same line, or ``None``.
    """

    text: str
    tags: list[tuple[str, Optional[str]]] = field(default_factory=list)

    def has(self, tag: str) -> bool:
        return any(name == tag for name, _ in self.tags)

    def values(self, tag: str) -> list[Optional[str]]:
        return [value for name, value in self.tags if name == tag]

    def first(self, tag: str) -> Optional[str]:
        for name, value in self.tags:
            if name == tag:
                return value
        return None


def _leading_comments(text: str) -> tuple[list[str], bool]:
    """Lex leading trivia; return ``(comments, has_statement)``.

    Raises:
        DocCommentError: On an unterminated block comment.
    """
    i = 0
    n = len(text)
    if text.startswith("\ufeff"):
        i = 1
    if text.startswith("#!", i):
        newline = text.find("\n", i)
        i = n if newline == -1 else newline + 1

    comments: list[str] = []
    while i < n:
        ch = text[i]
        if ch.isspace():
            i += 1
        elif text.startswith("//", i):
            newline = text.find("\n", i)
            end = n if newline == -1 else newline
            comments.append(text[i:end])
            i = end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            if end == -1:
                raise DocCommentError(f"Unterminated block comment at offset {i}")
            comments.append(text[i:end + 2])
            i = end + 2
        else:
            return comments, True
    return comments, False


def _is_doc_block(comment: str) -> bool:
    return comment.startswith("/**") and comment != "/**/"


def leading_doc_comment(text: str) -> Optional[str]:
    """Return the raw module doc comment of a source file, or ``None``.

    Args:
        text: Full source text.

    Raises:
        DocCommentError: If the leading trivia cannot be lexed.
    """
    comments, has_statement = _leading_comments(text)
    if has_statement:
        for comment in comments:
            if _is_doc_block(comment):
                return comment
        return None

    body = text[1:] if text.startswith("\ufeff") else text
    if comments and body.startswith(comments[0]) and _is_doc_block(comments[0]):
        return comments[0]
    return None


def parse_doc_comment(block: str) -> DocComment:
    """Parse the block tags of a ``/** ... */`` comment."""
    inner = block[3:-2] if block.endswith("*/") else block[3:]
    lines = []
    for line in inner.splitlines():
        stripped = line.strip()
        if stripped.startswith("*"):
            stripped = stripped[1:].strip()
        lines.append(stripped)
    tags: list[tuple[str, Optional[str]]] = []
    for line in lines:
        for match in _TAG_RE.finditer(line):
            tags.append((match.group(1), match.group(2)))
    return DocComment(text=block, tags=tags)


def read_module_doc(text: str) -> Optional[DocComment]:
    """Lex and parse the module doc comment of *text* in one step."""
    block = leading_doc_comment(text)
    if block is None:
        return None
    return parse_doc_comment(block)
