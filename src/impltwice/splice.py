"""
Source splicer: replaces ``impl_twice!(...)`` calls in Rust files with
the impl blocks they expand to.

This is the generation pass run before ``cargo build``:

    impl_twice!(
        impl<T> WrappedSlice<'_, T>, WrappedSliceMut<'_, T> {
            pub fn len(&self) -> usize { self.0.len() }
        }
    );

becomes two ordinary impl blocks at the same place. Text outside the
calls is left byte-identical. Calls inside strings and comments are
ignored because the scan works on tokens.
"""

import re
import warnings
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from impltwice.backends.rust_generator import render
from impltwice.config import EmitOptions
from impltwice.errors import ImplSyntaxError, SyntaxErrorKind
from impltwice.expander import expand_all
from impltwice.parser import parse_invocation
from impltwice.tokens import CLOSERS, OPENERS, Token, TokenKind, tokenize

_LEADING_INDENT_RE = re.compile(r"[ \t]*")


@dataclass(frozen=True)
class Invocation:
    """
    One macro call found in a source file.

    Properties:
        start: Offset of the call (path prefix included)
        end: Offset just past the closing delimiter (and ``;`` if present)
        inner: Text between the delimiters
        line, column: 1-based location of the call
        inner_line, inner_column: 1-based location where ``inner`` starts
    """

    start: int
    end: int
    inner: str
    line: int
    column: int
    inner_line: int
    inner_column: int


def _path_start(tokens: List[Token], index: int) -> int:
    """Walk back over ``a::b::`` segments in front of the macro name."""
    while index >= 2 and tokens[index - 1].text == "::" and tokens[index - 2].kind is TokenKind.IDENT:
        index -= 2
    if index >= 1 and tokens[index - 1].text == "::":
        index -= 1
    return index


def _matching_close(tokens: List[Token], open_index: int) -> Optional[int]:
    stack = [tokens[open_index].text]
    for index in range(open_index + 1, len(tokens)):
        text = tokens[index].text
        if text in OPENERS:
            stack.append(text)
        elif text in CLOSERS:
            if stack[-1] != CLOSERS[text]:
                return None
            stack.pop()
            if not stack:
                return index
    return None


def _skip_macro_definition(tokens: List[Token], index: int) -> Optional[int]:
    """Return the index after a ``macro_rules! name { ... }`` definition starting at ``index``."""
    open_index = index + 3
    if open_index >= len(tokens) or tokens[index + 1].text != "!":
        return None
    if tokens[open_index].text not in OPENERS:
        return None
    close_index = _matching_close(tokens, open_index)
    if close_index is None:
        return None
    return close_index + 1


def find_invocations(source: str, macro_name: str = "impl_twice") -> List[Invocation]:
    """
    Locate every call of ``macro_name!`` in Rust source.

    ``macro_rules!`` definitions are skipped whole. A name not followed
    by a delimiter group is left alone with a UserWarning.

    Raises:
        ImplSyntaxError: If the source cannot be lexed or a call's
            delimiters never close
    """
    tokens = tokenize(source)
    invocations: List[Invocation] = []
    index = 0
    while index < len(tokens):
        token = tokens[index]
        if token.text == "macro_rules":
            skipped = _skip_macro_definition(tokens, index)
            if skipped is not None:
                index = skipped
                continue
        is_call = (
            token.kind is TokenKind.IDENT
            and token.text == macro_name
            and index + 1 < len(tokens)
            and tokens[index + 1].text == "!"
        )
        if not is_call:
            index += 1
            continue

        open_index = index + 2
        if open_index >= len(tokens) or tokens[open_index].text not in OPENERS:
            warnings.warn(
                f"{token.line}:{token.column}: '{macro_name}!' is not followed by a "
                f"delimited argument; left unchanged",
                UserWarning,
            )
            index += 2
            continue

        opening = tokens[open_index]
        close_index = _matching_close(tokens, open_index)
        if close_index is None:
            raise ImplSyntaxError(
                SyntaxErrorKind.UNTERMINATED_BODY,
                f"unclosed '{opening.text}' in '{macro_name}!' call",
                opening.line,
                opening.column,
            )
        closing = tokens[close_index]

        end = closing.end
        after = close_index + 1
        if opening.text != "{" and after < len(tokens) and tokens[after].text == ";":
            end = tokens[after].end
            after += 1

        first = tokens[_path_start(tokens, index)]
        inner_start = opening.end
        inner_line = opening.line
        inner_column = opening.column + 1
        invocations.append(
            Invocation(
                start=first.offset,
                end=end,
                inner=source[inner_start:closing.offset],
                line=first.line,
                column=first.column,
                inner_line=inner_line,
                inner_column=inner_column,
            )
        )
        index = after
    return invocations


def _line_indent(source: str, offset: int) -> str:
    line_start = source.rfind("\n", 0, offset) + 1
    prefix = source[line_start:offset]
    if _LEADING_INDENT_RE.fullmatch(prefix):
        return prefix
    return ""


def expand_invocation(
    invocation: Invocation, options: Optional[EmitOptions] = None, indent: str = ""
) -> str:
    """
    Parse, expand and render one call.

    Raises:
        ImplSyntaxError: Located relative to the enclosing file
    """
    options = options or EmitOptions()
    try:
        specs = parse_invocation(invocation.inner)
    except ImplSyntaxError as e:
        raise e.relocated(invocation.inner_line, invocation.inner_column) from e
    return render(expand_all(specs), options=replace(options, trailing_newline=False), indent=indent)


def _splice(source: str, macro_name: str, options: EmitOptions) -> Tuple[str, int]:
    invocations = find_invocations(source, macro_name)
    pieces: List[str] = []
    last = 0
    for invocation in invocations:
        pieces.append(source[last:invocation.start])
        indent = _line_indent(source, invocation.start)
        pieces.append(expand_invocation(invocation, options, indent))
        last = invocation.end
    pieces.append(source[last:])
    return "".join(pieces), len(invocations)


def expand_source(
    source: str, macro_name: Optional[str] = None, options: Optional[EmitOptions] = None
) -> str:
    """
    Replace every call in ``source`` with its expansion.

    Args:
        source: Rust source text
        macro_name: Macro to look for (defaults to options.macro_name)
        options: Layout options

    Returns:
        Source with all calls expanded; identical to ``source`` if none

    Raises:
        ImplSyntaxError: On the first bad call; no partial output
    """
    options = options or EmitOptions()
    expanded, _ = _splice(source, macro_name or options.macro_name, options)
    return expanded


def expand_file(
    filepath: str,
    output: Optional[str] = None,
    macro_name: Optional[str] = None,
    options: Optional[EmitOptions] = None,
) -> int:
    """
    Expand every call in a Rust file.

    Args:
        filepath: Source file
        output: Destination path; None rewrites ``filepath`` in place
        macro_name: Macro to look for
        options: Layout options

    Returns:
        Number of calls expanded

    Raises:
        FileNotFoundError: If file doesn't exist
        ImplSyntaxError: On the first bad call; nothing is written
    """
    options = options or EmitOptions()
    with open(filepath, "r", encoding="utf-8") as f:
        source = f.read()

    expanded, count = _splice(source, macro_name or options.macro_name, options)

    if output is not None or count:
        with open(output or filepath, "w", encoding="utf-8") as f:
            f.write(expanded)
    return count


__all__ = [
    "Invocation",
    "find_invocations",
    "expand_invocation",
    "expand_source",
    "expand_file",
]
