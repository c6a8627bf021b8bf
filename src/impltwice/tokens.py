"""
Token Layer for impltwice

Splits Rust source text into a flat token stream with source locations.

The lexer knows just enough Rust to keep delimiters that live inside
literals and comments from being mistaken for structure:
    - line, nested block and doc comments
    - string, byte string, C string and raw string literals
    - char literals versus lifetimes
    - multi-character operators (longest match wins)

Plain comments are dropped. Doc comments are kept as tokens because they
are attributes of the item they document and must survive comparison.

ARCHITECTURAL RULE:
    Tokens are structure only. Nothing here knows what an impl block is.
"""

import re
from bisect import bisect_right
from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence, Tuple

from impltwice.errors import ImplSyntaxError, SyntaxErrorKind


class TokenKind(Enum):
    """Lexical categories. Keywords are reported as IDENT."""

    IDENT = "ident"
    LIFETIME = "lifetime"
    LITERAL = "literal"
    PUNCT = "punct"
    OPEN = "open"
    CLOSE = "close"
    DOC_COMMENT = "doc_comment"


@dataclass(frozen=True)
class Token:
    """
    A single lexeme.

    Properties:
        kind: TokenKind category
        text: Exact source text of the token
        offset: Index of the first character in the source
        line, column: 1-based location of the first character
    """

    kind: TokenKind
    text: str
    offset: int
    line: int
    column: int

    @property
    def end(self) -> int:
        return self.offset + len(self.text)


_WHITESPACE_RE = re.compile(r"\s+")
_LINE_COMMENT_RE = re.compile(r"//[^\n]*")
_RAW_STRING_START_RE = re.compile(r'(?:br|cr|r)(#*)"')
_STRING_RE = re.compile(r'(?:b|c)?"(?:[^"\\]|\\.)*"', re.DOTALL)
_STRING_START_RE = re.compile(r'(?:b|c)?"')
_CHAR_RE = re.compile(
    r"b?'(?:[^'\\\n]|\\(?:x[0-9a-fA-F]{2}|u\{[0-9a-fA-F_]{1,6}\}|[nrt0\\'\"]))'"
)
_LIFETIME_RE = re.compile(r"'(?:r#)?[^\W\d]\w*")
_IDENT_RE = re.compile(r"(?:r#)?[^\W\d]\w*")
_NUMBER_RE = re.compile(r"\d(?:[eE][+-]\d|\w|\.(?=\d))*")

_OPERATORS = [
    "<<=", ">>=", "...", "..=",
    "::", "->", "=>", "==", "!=", "<=", ">=", "&&", "||",
    "+=", "-=", "*=", "/=", "%=", "^=", "&=", "|=", "<<", ">>", "..",
    "+", "-", "*", "/", "%", "^", "!", "&", "|", "=", "<", ">",
    "@", ".", ",", ";", ":", "#", "$", "?", "~",
]
_PUNCT_RE = re.compile("|".join(re.escape(op) for op in _OPERATORS))

OPENERS = {"(": ")", "[": "]", "{": "}"}
CLOSERS = {")": "(", "]": "[", "}": "{"}

# Compound operators the parser breaks apart where only single angle
# brackets or reference sigils make sense (``Vec<Vec<T>>``, ``&&T``).
SPLITTABLE = frozenset({">>", "<<", "&&"})


def line_column(source: str, offset: int) -> Tuple[int, int]:
    """Return the 1-based (line, column) of ``offset`` in ``source``."""
    line = source.count("\n", 0, offset) + 1
    line_start = source.rfind("\n", 0, offset) + 1
    return line, offset - line_start + 1


def _scan_block_comment(source: str, start: int) -> int:
    """Return the offset just past the (possibly nested) block comment at ``start``."""
    depth = 0
    index = start
    while index < len(source):
        if source.startswith("/*", index):
            depth += 1
            index += 2
        elif source.startswith("*/", index):
            depth -= 1
            index += 2
            if depth == 0:
                return index
        else:
            index += 1
    line, column = line_column(source, start)
    raise ImplSyntaxError(
        SyntaxErrorKind.INVALID_TOKEN, "unterminated block comment", line, column
    )


def _is_doc_line_comment(text: str) -> bool:
    return (text.startswith("///") and not text.startswith("////")) or text.startswith("//!")


def _is_doc_block_comment(text: str) -> bool:
    if text.startswith("/*!"):
        return True
    return text.startswith("/**") and not text.startswith("/***") and text != "/**/"


def tokenize(source: str) -> List[Token]:
    """
    Lex Rust source text.

    Args:
        source: Rust source (a whole file or a macro argument)

    Returns:
        Tokens in source order, plain comments and whitespace removed

    Raises:
        ImplSyntaxError: INVALID_TOKEN for unterminated literals or
            comments and for characters Rust does not use
    """
    tokens: List[Token] = []
    line_starts = [0] + [match.end() for match in re.finditer("\n", source)]

    def emit(kind: TokenKind, start: int, end: int) -> None:
        line = bisect_right(line_starts, start)
        column = start - line_starts[line - 1] + 1
        tokens.append(Token(kind, source[start:end], start, line, column))

    def fail(message: str, start: int) -> ImplSyntaxError:
        line = bisect_right(line_starts, start)
        column = start - line_starts[line - 1] + 1
        return ImplSyntaxError(SyntaxErrorKind.INVALID_TOKEN, message, line, column)

    index = 0
    length = len(source)
    while index < length:
        char = source[index]

        match = _WHITESPACE_RE.match(source, index)
        if match:
            index = match.end()
            continue

        if source.startswith("//", index):
            end = _LINE_COMMENT_RE.match(source, index).end()
            if _is_doc_line_comment(source[index:end]):
                emit(TokenKind.DOC_COMMENT, index, end)
            index = end
            continue

        if source.startswith("/*", index):
            end = _scan_block_comment(source, index)
            if _is_doc_block_comment(source[index:end]):
                emit(TokenKind.DOC_COMMENT, index, end)
            index = end
            continue

        match = _RAW_STRING_START_RE.match(source, index)
        if match:
            terminator = '"' + match.group(1)
            close = source.find(terminator, match.end())
            if close < 0:
                raise fail("unterminated raw string literal", index)
            end = close + len(terminator)
            emit(TokenKind.LITERAL, index, end)
            index = end
            continue

        match = _STRING_RE.match(source, index)
        if match:
            emit(TokenKind.LITERAL, index, match.end())
            index = match.end()
            continue
        if _STRING_START_RE.match(source, index):
            raise fail("unterminated string literal", index)

        match = _CHAR_RE.match(source, index)
        if match:
            emit(TokenKind.LITERAL, index, match.end())
            index = match.end()
            continue

        if char == "'":
            match = _LIFETIME_RE.match(source, index)
            if not match:
                raise fail("unterminated character literal", index)
            emit(TokenKind.LIFETIME, index, match.end())
            index = match.end()
            continue

        match = _IDENT_RE.match(source, index)
        if match:
            emit(TokenKind.IDENT, index, match.end())
            index = match.end()
            continue

        match = _NUMBER_RE.match(source, index)
        if match:
            emit(TokenKind.LITERAL, index, match.end())
            index = match.end()
            continue

        if char in OPENERS:
            emit(TokenKind.OPEN, index, index + 1)
            index += 1
            continue
        if char in CLOSERS:
            emit(TokenKind.CLOSE, index, index + 1)
            index += 1
            continue

        match = _PUNCT_RE.match(source, index)
        if match:
            emit(TokenKind.PUNCT, index, match.end())
            index = match.end()
            continue

        raise fail(f"unexpected character {char!r}", index)

    return tokens


def split_token(token: Token) -> List[Token]:
    """Break a compound operator such as ``>>`` into one token per character."""
    return [
        Token(TokenKind.PUNCT, char, token.offset + i, token.line, token.column + i)
        for i, char in enumerate(token.text)
    ]


# =========================================================================
# RENDERING
# =========================================================================

_WORD_RE = re.compile(r"(?:r#)?[^\W\d]\w*$")
_SPACED_KEYWORDS = frozenset({"as", "const", "dyn", "impl", "in", "mut", "where"})
_NO_SPACE_BEFORE = frozenset({",", ";", ":", "::", ".", ")", "]", ">", ">>"})
_NO_SPACE_AFTER = frozenset({"(", "[", "<", "::", ".", "&", "*", "?", "!", "#", "$"})


def _needs_space(previous: str, current: str) -> bool:
    if previous in _NO_SPACE_AFTER or current in _NO_SPACE_BEFORE:
        return False
    if current == "<":
        return not _WORD_RE.match(previous)
    if current in ("(", "["):
        return not (_WORD_RE.match(previous) and previous not in _SPACED_KEYWORDS)
    return True


def join_tokens(texts: Sequence[str]) -> str:
    """
    Render header tokens with conventional Rust spacing.

    Meant for type-position fragments (types, traits, bounds, where
    predicates). Output depends only on the token texts, so inputs that
    differ in whitespace render identically.

    Examples:
        ["Vec", "<", "&", "'a", "mut", "T", ">"]  ->  "Vec<&'a mut T>"
        ["T", ":", "?", "Sized", "+", "Send"]      ->  "T: ?Sized + Send"
    """
    parts: List[str] = []
    previous = None
    for text in texts:
        if previous is not None and _needs_space(previous, text):
            parts.append(" ")
        parts.append(text)
        previous = text
    return "".join(parts)


__all__ = [
    "TokenKind",
    "Token",
    "tokenize",
    "split_token",
    "join_tokens",
    "line_column",
    "OPENERS",
    "CLOSERS",
    "SPLITTABLE",
]
