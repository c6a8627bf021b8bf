"""
Tests for the token layer.

The lexer has to keep braces that live in strings, chars and comments
from being counted as structure, and join_tokens has to render header
fragments the same way no matter how they were laid out.
"""

import pytest

from impltwice.errors import ImplSyntaxError, SyntaxErrorKind
from impltwice.tokens import TokenKind, join_tokens, line_column, split_token, tokenize


def texts(source):
    return [token.text for token in tokenize(source)]


class TestTokenize:
    """Basic lexing of header and body text."""

    def test_simple_header(self):
        """impl<T> A<T> lexes into idents and angle brackets."""
        tokens = tokenize("impl<T> A<T>")
        assert [t.text for t in tokens] == ["impl", "<", "T", ">", "A", "<", "T", ">"]
        assert tokens[0].kind == TokenKind.IDENT
        assert tokens[1].kind == TokenKind.PUNCT

    def test_delimiters_have_open_close_kinds(self):
        tokens = tokenize("( [ { } ] )")
        kinds = [t.kind for t in tokens]
        assert kinds[:3] == [TokenKind.OPEN] * 3
        assert kinds[3:] == [TokenKind.CLOSE] * 3

    def test_lifetimes_versus_chars(self):
        """'a is a lifetime, 'b' and '\\n' are char literals."""
        tokens = tokenize("'a 'b' '\\n' 'static '_")
        assert [t.kind for t in tokens] == [
            TokenKind.LIFETIME,
            TokenKind.LITERAL,
            TokenKind.LITERAL,
            TokenKind.LIFETIME,
            TokenKind.LIFETIME,
        ]

    def test_brace_in_char_literal(self):
        """A '}' char is one literal, not a closing brace."""
        tokens = tokenize("'}' x")
        assert tokens[0].kind == TokenKind.LITERAL
        assert tokens[0].text == "'}'"

    def test_string_with_braces_and_escaped_quote(self):
        tokens = tokenize('"a\\"}" b')
        assert [t.text for t in tokens] == ['"a\\"}"', "b"]
        assert tokens[0].kind == TokenKind.LITERAL

    def test_raw_string(self):
        """Raw strings end only at the matching number of hashes."""
        source = 'r#"{ "}" }"# x'
        tokens = tokenize(source)
        assert tokens[0].text == 'r#"{ "}" }"#'
        assert tokens[1].text == "x"

    def test_byte_string(self):
        assert texts('b"{" c') == ['b"{"', "c"]

    def test_plain_comments_dropped(self):
        assert texts("a // x }\n /* y { */ b") == ["a", "b"]

    def test_nested_block_comment(self):
        assert texts("/* a /* b */ c */ x") == ["x"]

    def test_doc_comments_kept(self):
        """/// and /** */ comments are tokens; //// is a plain comment."""
        tokens = tokenize("/// doc\n//// not doc\n/** block */ x")
        assert [t.text for t in tokens] == ["/// doc", "/** block */", "x"]
        assert tokens[0].kind == TokenKind.DOC_COMMENT
        assert tokens[1].kind == TokenKind.DOC_COMMENT

    def test_longest_operator_wins(self):
        assert texts("a >>= b -> c :: d") == ["a", ">>=", "b", "->", "c", "::", "d"]

    def test_method_call_on_tuple_field(self):
        assert texts("self.0.len()") == ["self", ".", "0", ".", "len", "(", ")"]

    def test_raw_identifier(self):
        assert texts("r#type") == ["r#type"]

    def test_locations(self):
        tokens = tokenize("a\n  b")
        assert (tokens[1].line, tokens[1].column) == (2, 3)
        assert tokens[1].offset == 4
        assert tokens[1].end == 5

    def test_empty_source(self):
        assert tokenize("") == []


class TestTokenizeErrors:
    """Lexical errors are reported as INVALID_TOKEN."""

    def test_unterminated_string(self):
        with pytest.raises(ImplSyntaxError) as exc:
            tokenize('x "abc')
        assert exc.value.kind == SyntaxErrorKind.INVALID_TOKEN
        assert (exc.value.line, exc.value.column) == (1, 3)

    def test_unterminated_raw_string(self):
        with pytest.raises(ImplSyntaxError) as exc:
            tokenize('r#"abc"')
        assert exc.value.kind == SyntaxErrorKind.INVALID_TOKEN

    def test_unterminated_block_comment(self):
        with pytest.raises(ImplSyntaxError) as exc:
            tokenize("a /* /* */")
        assert exc.value.kind == SyntaxErrorKind.INVALID_TOKEN

    def test_unexpected_character(self):
        with pytest.raises(ImplSyntaxError) as exc:
            tokenize("a ` b")
        assert exc.value.kind == SyntaxErrorKind.INVALID_TOKEN
        assert exc.value.column == 3


class TestSplitAndLocate:
    def test_split_token(self):
        token = tokenize("  >>")[0]
        pieces = split_token(token)
        assert [p.text for p in pieces] == [">", ">"]
        assert [p.offset for p in pieces] == [2, 3]
        assert [p.column for p in pieces] == [3, 4]

    def test_line_column(self):
        assert line_column("ab\ncd", 0) == (1, 1)
        assert line_column("ab\ncd", 4) == (2, 2)


class TestJoinTokens:
    """Rendering of header fragments."""

    def test_reference_in_generics(self):
        assert join_tokens(["Vec", "<", "&", "'a", "mut", "T", ">"]) == "Vec<&'a mut T>"

    def test_bounds(self):
        assert join_tokens(["T", ":", "?", "Sized", "+", "Send"]) == "T: ?Sized + Send"

    def test_slice_reference(self):
        assert join_tokens(["&", "'_", "[", "T", "]"]) == "&'_ [T]"
        assert join_tokens(["&", "mut", "[", "T", "]"]) == "&mut [T]"

    def test_closure_trait_object(self):
        tokens = ["Box", "<", "dyn", "Fn", "(", "u8", ")", "->", "u8", ">"]
        assert join_tokens(tokens) == "Box<dyn Fn(u8) -> u8>"

    def test_higher_ranked_bound(self):
        tokens = ["for", "<", "'a", ">", "Fn", "(", "&", "'a", "T", ")"]
        assert join_tokens(tokens) == "for<'a> Fn(&'a T)"

    def test_array_and_tuple(self):
        assert join_tokens(["[", "u8", ";", "4", "]"]) == "[u8; 4]"
        assert join_tokens(["(", "A", ",", "B", ")"]) == "(A, B)"

    def test_path(self):
        assert join_tokens(["std", "::", "fmt", "::", "Debug"]) == "std::fmt::Debug"

    def test_unsplit_double_closer(self):
        """A >> token straight from the lexer hugs the type before it."""
        assert join_tokens(["Vec", "<", "Vec", "<", "T", ">>"]) == "Vec<Vec<T>>"
        assert join_tokens(["A", "<", "B", "<", "C", "<", "D", ">>", ">"]) == "A<B<C<D>>>"

    def test_layout_independent(self):
        """Differently spaced sources join to the same text."""
        compact = join_tokens(texts("HashMap<K,Vec<V>>"))
        spaced = join_tokens(texts("HashMap < K , Vec < V > >"))
        assert compact == "HashMap<K, Vec<V>>"
        assert spaced == compact
