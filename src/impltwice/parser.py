"""
Invocation Parser for impltwice (Raw Text -> SharedSpec).

Grammar of one block:

    impl [<generics>] target ("," target)* [where predicates] { items }

    target     := [Trait for] Type
    predicates := "(" tokens ")" | tokens

Several headers may share one body, and several blocks may follow one
another in the same invocation:

    impl<A, B> Complex<A, B> where (A: Clone, B: Clone)
    impl<T> Simple<T> where (T: Clone) {
        fn duplicate(&self) -> Self { self.clone() }
    }

Each header becomes one SharedSpec. Types, traits, bounds and where
predicates are kept as opaque token runs; the body is captured verbatim
and never re-parsed.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from impltwice.errors import ImplSyntaxError, SyntaxErrorKind
from impltwice.model import (
    Body,
    GenericKind,
    GenericParam,
    SharedSpec,
    TraitRef,
    TypeExpr,
    WhereClause,
)
from impltwice.tokens import (
    CLOSERS,
    OPENERS,
    SPLITTABLE,
    Token,
    TokenKind,
    join_tokens,
    line_column,
    split_token,
    tokenize,
)


# Words after which another word legitimately follows inside one type
# (``dyn Trait``, ``&mut T``, ``unsafe extern "C" fn()``).
_TYPE_PREFIX_KEYWORDS = frozenset(
    {"as", "const", "dyn", "extern", "fn", "for", "impl", "mut", "unsafe", "where"}
)
_HEADER_STOPS = frozenset({"{", "where", "impl"})
# Words that can only start an item, so a header running into one is
# missing its opening brace.
_ITEM_KEYWORDS = frozenset(
    {"async", "const", "enum", "fn", "mod", "pub", "static", "struct", "trait", "type", "unsafe", "use"}
)


@dataclass
class _Header:
    """Parsed ``impl ... targets ... where ...`` prefix of a block."""
    generics: Tuple[GenericParam, ...]
    trait_ref: Optional[TraitRef]
    targets: Tuple[TypeExpr, ...]
    where_clause: Optional[WhereClause]


def _track_nesting(stack: List[str], text: str) -> bool:
    """Update ``stack`` for one token; return False on a mismatched closer."""
    if text in OPENERS or text == "<":
        stack.append(text)
    elif text == ">":
        if stack and stack[-1] == "<":
            stack.pop()
    elif text in CLOSERS:
        while stack and stack[-1] == "<":
            stack.pop()
        if not stack or stack[-1] != CLOSERS[text]:
            return False
        stack.pop()
    return True


def _split_top_level(tokens: Sequence[Token], separator: str) -> List[List[Token]]:
    """Split ``tokens`` on ``separator`` wherever it is not nested."""
    pieces: List[List[Token]] = [[]]
    stack: List[str] = []
    for token in tokens:
        if not stack and token.text == separator:
            pieces.append([])
            continue
        _track_nesting(stack, token.text)
        pieces[-1].append(token)
    return pieces


def _ends_type(token: Token) -> bool:
    if token.kind is TokenKind.IDENT:
        return token.text not in _TYPE_PREFIX_KEYWORDS
    return token.text in (">", ")", "]")


def _find_juxtaposition(tokens: Sequence[Token]) -> Optional[Token]:
    """Return the first token that starts a second type right after a complete one."""
    stack: List[str] = []
    previous: Optional[Token] = None
    binder = False
    for token in tokens:
        if (
            not stack
            and previous is not None
            and _ends_type(previous)
            and token.kind is TokenKind.IDENT
            and token.text != "as"
        ):
            return token
        if not stack and token.text == "<" and previous is not None and previous.text == "for":
            binder = True
        _track_nesting(stack, token.text)
        if stack:
            previous = None
        elif binder:
            # ``for<'a>`` is followed by the type it binds
            binder = False
            previous = None
        else:
            previous = token
    return None


def _texts(tokens: Sequence[Token]) -> Tuple[str, ...]:
    return tuple(token.text for token in tokens)


class _Parser:
    """Cursor over the token stream of one invocation."""

    def __init__(self, source: str):
        self.source = source
        self.tokens = tokenize(source)
        self.pos = 0

    # =========================================================================
    # CURSOR
    # =========================================================================

    def peek(self) -> Optional[Token]:
        if self.pos < len(self.tokens):
            return self.tokens[self.pos]
        return None

    def at(self, text: str) -> bool:
        token = self.peek()
        return token is not None and token.text == text

    def at_end(self) -> bool:
        return self.pos >= len(self.tokens)

    def advance(self) -> Token:
        token = self.tokens[self.pos]
        self.pos += 1
        return token

    def split_here(self) -> None:
        """Break ``>>``, ``<<`` and ``&&`` at the cursor into single characters."""
        token = self.peek()
        if token is not None and token.text in SPLITTABLE:
            self.tokens[self.pos:self.pos + 1] = split_token(token)

    def error(
        self, kind: SyntaxErrorKind, message: str, token: Optional[Token] = None
    ) -> ImplSyntaxError:
        if token is None:
            token = self.peek()
        if token is None:
            line, column = line_column(self.source, len(self.source))
        else:
            line, column = token.line, token.column
        return ImplSyntaxError(kind, message, line, column)

    # =========================================================================
    # BLOCKS
    # =========================================================================

    def parse_blocks(self) -> List[SharedSpec]:
        specs: List[SharedSpec] = []
        while not self.at_end():
            specs.extend(self.parse_block())
        return specs

    def parse_block(self) -> List[SharedSpec]:
        headers = [self.parse_header()]
        while self.at("impl"):
            headers.append(self.parse_header())
        body = self.parse_body()
        return [_build_spec(header, body) for header in headers]

    def parse_header(self) -> _Header:
        token = self.peek()
        if token is None or token.text != "impl":
            found = "end of input" if token is None else f"'{token.text}'"
            raise self.error(
                SyntaxErrorKind.MISSING_IMPL_KEYWORD, f"expected 'impl', found {found}"
            )
        impl_token = self.advance()

        generics: Tuple[GenericParam, ...] = ()
        self.split_here()
        if self.at("<"):
            generics = self.parse_generics()

        trait_ref, targets = self.parse_targets(impl_token)

        where_clause = None
        if self.at("where"):
            where_clause = self.parse_where()

        return _Header(generics, trait_ref, targets, where_clause)

    def parse_body(self) -> Body:
        token = self.peek()
        if token is None:
            raise self.error(SyntaxErrorKind.UNTERMINATED_BODY, "expected '{' to open the body")
        if token.text != "{":
            raise self.error(
                SyntaxErrorKind.UNTERMINATED_BODY,
                f"expected '{{' to open the body, found '{token.text}'",
            )
        opening = self.advance()
        start = self.pos
        stack = ["{"]
        while stack:
            token = self.peek()
            if token is None:
                raise self.error(
                    SyntaxErrorKind.UNTERMINATED_BODY, "missing closing '}' for the body", opening
                )
            if token.text in OPENERS:
                stack.append(token.text)
            elif token.text in CLOSERS:
                if stack[-1] != CLOSERS[token.text]:
                    raise self.error(
                        SyntaxErrorKind.UNTERMINATED_BODY,
                        f"mismatched '{token.text}' inside the body",
                    )
                stack.pop()
            self.advance()
        closing = self.tokens[self.pos - 1]
        return Body(
            text=self.source[opening.end:closing.offset],
            tokens=_texts(self.tokens[start:self.pos - 1]),
        )

    # =========================================================================
    # GENERICS
    # =========================================================================

    def parse_generics(self) -> Tuple[GenericParam, ...]:
        opening = self.advance()
        params: List[GenericParam] = []
        while True:
            self.split_here()
            token = self.peek()
            if token is None:
                raise self.error(
                    SyntaxErrorKind.MALFORMED_GENERICS, "unclosed generic parameter list", opening
                )
            if token.text == ">":
                self.advance()
                return tuple(params)
            params.append(self.parse_generic_param(opening))
            self.split_here()
            if self.at(","):
                self.advance()
            elif not self.at(">") and not self.at_end():
                raise self.error(
                    SyntaxErrorKind.MALFORMED_GENERICS,
                    f"expected ',' or '>' in generic parameters, found '{self.peek().text}'",
                )

    def parse_generic_param(self, opening: Token) -> GenericParam:
        token = self.peek()

        if token.kind is TokenKind.LIFETIME:
            self.advance()
            bounds: Tuple[str, ...] = ()
            if self.at(":"):
                colon = self.advance()
                bounds = self.parse_bounds(opening, colon)
                for bound in bounds:
                    if not bound.startswith("'"):
                        raise self.error(
                            SyntaxErrorKind.MALFORMED_GENERICS,
                            f"lifetime '{token.text}' can only be bounded by lifetimes, not '{bound}'",
                            colon,
                        )
            return GenericParam(name=token.text, kind=GenericKind.LIFETIME, bounds=bounds)

        if token.text == "const":
            self.advance()
            name = self.peek()
            if name is None or name.kind is not TokenKind.IDENT:
                raise self.error(
                    SyntaxErrorKind.MALFORMED_GENERICS, "expected a parameter name after 'const'"
                )
            self.advance()
            if not self.at(":"):
                raise self.error(
                    SyntaxErrorKind.MALFORMED_GENERICS,
                    f"const parameter '{name.text}' needs a type",
                    name,
                )
            colon = self.advance()
            const_type = self.collect_generic_tokens(opening, (",", ">", "="))
            if not const_type:
                raise self.error(
                    SyntaxErrorKind.MALFORMED_GENERICS,
                    f"expected a type after ':' for const parameter '{name.text}'",
                    colon,
                )
            return GenericParam(
                name=name.text,
                kind=GenericKind.CONST,
                const_type=join_tokens(_texts(const_type)),
                default=self.parse_default(opening),
            )

        if token.kind is TokenKind.IDENT and token.text not in _TYPE_PREFIX_KEYWORDS:
            self.advance()
            bounds = ()
            if self.at(":"):
                colon = self.advance()
                bounds = self.parse_bounds(opening, colon)
            return GenericParam(name=token.text, bounds=bounds, default=self.parse_default(opening))

        raise self.error(
            SyntaxErrorKind.MALFORMED_GENERICS,
            f"expected a lifetime, type or const parameter, found '{token.text}'",
        )

    def parse_bounds(self, opening: Token, colon: Token) -> Tuple[str, ...]:
        tokens = self.collect_generic_tokens(opening, (",", ">", "="))
        if not tokens:
            raise self.error(
                SyntaxErrorKind.MALFORMED_GENERICS, "expected a bound after ':'", colon
            )
        bounds = []
        for piece in _split_top_level(tokens, "+"):
            if not piece:
                raise self.error(
                    SyntaxErrorKind.MALFORMED_GENERICS, "empty bound in '+' list", colon
                )
            bounds.append(join_tokens(_texts(piece)))
        return tuple(bounds)

    def parse_default(self, opening: Token) -> Optional[str]:
        if not self.at("="):
            return None
        equals = self.advance()
        tokens = self.collect_generic_tokens(opening, (",", ">"))
        if not tokens:
            raise self.error(
                SyntaxErrorKind.MALFORMED_GENERICS, "expected a default after '='", equals
            )
        return join_tokens(_texts(tokens))

    def collect_generic_tokens(self, opening: Token, stops: Sequence[str]) -> List[Token]:
        collected: List[Token] = []
        stack: List[str] = []
        while True:
            self.split_here()
            token = self.peek()
            if token is None:
                raise self.error(
                    SyntaxErrorKind.MALFORMED_GENERICS, "unclosed generic parameter list", opening
                )
            if not stack and token.text in stops:
                return collected
            if not _track_nesting(stack, token.text):
                raise self.error(
                    SyntaxErrorKind.MALFORMED_GENERICS,
                    f"mismatched '{token.text}' in generic parameters",
                )
            collected.append(self.advance())

    # =========================================================================
    # TARGETS
    # =========================================================================

    def parse_targets(self, impl_token: Token) -> Tuple[Optional[TraitRef], Tuple[TypeExpr, ...]]:
        segments, separators = self.collect_target_segments()

        shared_trait: Optional[Tuple[str, ...]] = None
        targets: List[TypeExpr] = []
        for index, segment in enumerate(segments):
            if not segment:
                if index == 0 and not separators:
                    raise self.error(
                        SyntaxErrorKind.EMPTY_TARGET_LIST,
                        "expected at least one target type after 'impl'",
                    )
                if index == 0:
                    raise self.error(
                        SyntaxErrorKind.EMPTY_TARGET_LIST,
                        "expected a target type before ','",
                        separators[0],
                    )
                raise self.error(
                    SyntaxErrorKind.EMPTY_TARGET_LIST,
                    "expected a target type after ','",
                    separators[index - 1],
                )

            trait_tokens, type_tokens = self.split_trait(segment)

            stray = _find_juxtaposition(type_tokens)
            if stray is not None and stray.text in _ITEM_KEYWORDS:
                raise self.error(
                    SyntaxErrorKind.UNTERMINATED_BODY,
                    f"expected '{{' to open the body before '{stray.text}'",
                    stray,
                )
            if stray is not None:
                raise self.error(
                    SyntaxErrorKind.MISSING_TARGET_SEPARATOR,
                    f"expected ',' between target types before '{stray.text}'",
                    stray,
                )

            if trait_tokens is not None:
                stray = _find_juxtaposition(trait_tokens)
                if stray is not None:
                    raise self.error(
                        SyntaxErrorKind.UNEXPECTED_TOKEN,
                        f"unexpected '{stray.text}' in trait reference",
                        stray,
                    )
                trait_texts = _texts(trait_tokens)
                if index == 0:
                    shared_trait = trait_texts
                elif trait_texts != shared_trait:
                    expected = "no trait" if shared_trait is None else f"'{join_tokens(shared_trait)}'"
                    raise self.error(
                        SyntaxErrorKind.MISMATCHED_TRAIT_REF,
                        f"target implements '{join_tokens(trait_texts)}' but the first target "
                        f"implements {expected}",
                        trait_tokens[0],
                    )

            targets.append(TypeExpr(_texts(type_tokens)))

        trait_ref = TraitRef(shared_trait) if shared_trait is not None else None
        return trait_ref, tuple(targets)

    def collect_target_segments(self) -> Tuple[List[List[Token]], List[Token]]:
        segments: List[List[Token]] = [[]]
        separators: List[Token] = []
        stack: List[str] = []
        while True:
            self.split_here()
            token = self.peek()
            if token is None:
                raise self.error(
                    SyntaxErrorKind.UNTERMINATED_BODY, "expected '{' to open the body"
                )
            if not stack and token.text in _HEADER_STOPS:
                return segments, separators
            if token.kind is TokenKind.DOC_COMMENT:
                raise self.error(
                    SyntaxErrorKind.UNTERMINATED_BODY,
                    "expected '{' to open the body before doc comment",
                )
            if not stack and token.text == ",":
                separators.append(self.advance())
                segments.append([])
                continue
            if not _track_nesting(stack, token.text):
                if not stack and token.text == "}":
                    raise self.error(
                        SyntaxErrorKind.UNTERMINATED_BODY, "found '}' before '{' opened the body"
                    )
                raise self.error(
                    SyntaxErrorKind.UNEXPECTED_TOKEN, f"mismatched '{token.text}' in target type"
                )
            segments[-1].append(self.advance())

    def split_trait(
        self, segment: List[Token]
    ) -> Tuple[Optional[List[Token]], List[Token]]:
        """Split ``Trait for Type`` at the connective; ``for<'a>`` is left alone."""
        connective: Optional[int] = None
        stack: List[str] = []
        for index, token in enumerate(segment):
            if not stack and token.text == "for":
                following = segment[index + 1] if index + 1 < len(segment) else None
                if following is None or following.text != "<":
                    if connective is not None:
                        raise self.error(
                            SyntaxErrorKind.UNEXPECTED_TOKEN, "unexpected second 'for'", token
                        )
                    connective = index
            _track_nesting(stack, token.text)

        if connective is None:
            return None, segment
        if connective == 0:
            raise self.error(
                SyntaxErrorKind.UNEXPECTED_TOKEN, "expected a trait before 'for'", segment[0]
            )
        type_tokens = segment[connective + 1:]
        if not type_tokens:
            raise self.error(
                SyntaxErrorKind.EMPTY_TARGET_LIST,
                "expected a target type after 'for'",
                segment[connective],
            )
        return segment[:connective], type_tokens

    # =========================================================================
    # WHERE CLAUSE
    # =========================================================================

    def parse_where(self) -> WhereClause:
        keyword = self.advance()
        predicates: Optional[List[Token]] = None

        if self.at("("):
            # ``where (T: Clone)`` unless the group is the start of a
            # predicate such as ``(A, B): Trait``.
            saved = self.pos
            group = self.collect_group(self.advance())
            if self.at_end() or self.at("{") or self.at("impl"):
                predicates = group
            else:
                self.pos = saved

        if predicates is None:
            predicates = []
            stack: List[str] = []
            while True:
                self.split_here()
                token = self.peek()
                if token is None:
                    raise self.error(
                        SyntaxErrorKind.UNTERMINATED_BODY, "expected '{' to open the body"
                    )
                if not stack and token.text in ("{", "impl"):
                    break
                if not _track_nesting(stack, token.text):
                    raise self.error(
                        SyntaxErrorKind.UNEXPECTED_TOKEN,
                        f"mismatched '{token.text}' in where clause",
                    )
                predicates.append(self.advance())

        if not predicates:
            raise self.error(SyntaxErrorKind.UNEXPECTED_TOKEN, "empty where clause", keyword)
        return WhereClause(_texts(predicates))

    def collect_group(self, opening: Token) -> List[Token]:
        """Return the tokens inside the group opened by ``opening``; consume its closer."""
        collected: List[Token] = []
        stack = [opening.text]
        while True:
            self.split_here()
            token = self.peek()
            if token is None:
                raise self.error(
                    SyntaxErrorKind.UNEXPECTED_TOKEN, f"unclosed '{opening.text}'", opening
                )
            if not _track_nesting(stack, token.text):
                raise self.error(SyntaxErrorKind.UNEXPECTED_TOKEN, f"mismatched '{token.text}'")
            self.advance()
            if not stack:
                return collected
            collected.append(token)


def _build_spec(header: _Header, body: Body) -> SharedSpec:
    return SharedSpec(
        generics=header.generics,
        trait_ref=header.trait_ref,
        targets=header.targets,
        body=body,
        where_clause=header.where_clause,
    )


def parse(raw_invocation: str) -> SharedSpec:
    """
    Parse a single-header invocation into a SharedSpec.

    Args:
        raw_invocation: Text such as ``impl<T> A<T>, B<T> { ... }``

    Returns:
        SharedSpec for the one header

    Raises:
        ImplSyntaxError: If the text is not exactly one well-formed block
    """
    parser = _Parser(raw_invocation)
    header = parser.parse_header()
    if parser.at("impl"):
        raise parser.error(
            SyntaxErrorKind.UNEXPECTED_TOKEN,
            "several headers share this body; use parse_invocation",
        )
    body = parser.parse_body()
    if not parser.at_end():
        raise parser.error(
            SyntaxErrorKind.UNEXPECTED_TOKEN,
            f"unexpected '{parser.peek().text}' after the body",
        )
    return _build_spec(header, body)


def parse_invocation(raw_invocation: str) -> List[SharedSpec]:
    """
    Parse a full invocation: any number of blocks, each with one or more
    headers sharing its body.

    Args:
        raw_invocation: Macro argument text (without ``impl_twice!( )``)

    Returns:
        One SharedSpec per header, in source order. Empty input yields []

    Raises:
        ImplSyntaxError: On the first syntax error; nothing is returned
    """
    return _Parser(raw_invocation).parse_blocks()


def parse_invocation_file(filepath: str) -> List[SharedSpec]:
    """
    Parse a file that holds a bare invocation.

    Raises:
        FileNotFoundError: If file doesn't exist
        ImplSyntaxError: If parsing fails
    """
    with open(filepath, "r", encoding="utf-8") as f:
        content = f.read()
    return parse_invocation(content)


__all__ = [
    "parse",
    "parse_invocation",
    "parse_invocation_file",
]
