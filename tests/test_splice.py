"""
Tests for the source splicer.

Every impl_twice! call in a Rust file is replaced by its impl blocks;
everything else in the file stays byte-identical.
"""

import pytest

from impltwice.config import EmitOptions
from impltwice.errors import ImplSyntaxError, SyntaxErrorKind
from impltwice.examples import SOURCE_FILE
from impltwice.splice import expand_file, expand_source, find_invocations

BODY = "\n        pub fn len(&self) -> usize {\n            self.0.len()\n        }\n    "

EXPANDED_SOURCE_FILE = (
    "struct WrappedSlice<'a, T>(&'a [T]);\n"
    "struct WrappedSliceMut<'a, T>(&'a mut [T]);\n"
    "\n"
    "impl<T> WrappedSlice<'_, T> {" + BODY + "}\n"
    "\n"
    "impl<T> WrappedSliceMut<'_, T> {" + BODY + "}\n"
    "\n"
    "impl<T> WrappedSliceMut<'_, T> {\n"
    "    pub fn get_mut(&mut self, index: usize) -> Option<&'_ mut T> {\n"
    "        self.0.get_mut(index)\n"
    "    }\n"
    "}\n"
)


class TestFindInvocations:
    """Locating calls in Rust source."""

    def test_finds_call(self):
        """The call, its delimiters and its argument are located."""
        invocations = find_invocations(SOURCE_FILE)
        assert len(invocations) == 1
        call = invocations[0]
        assert (call.line, call.column) == (4, 1)
        assert (call.inner_line, call.inner_column) == (4, 13)
        assert SOURCE_FILE[call.start:call.end].startswith("impl_twice!(")
        assert SOURCE_FILE[call.start:call.end].endswith(");")
        assert call.inner.strip().startswith("impl<T> WrappedSlice")

    def test_ignores_strings_and_comments(self):
        """Calls inside strings and comments are not calls."""
        source = 'let s = "impl_twice!(x)"; // impl_twice!(y)\n/* impl_twice!(z) */\n'
        assert find_invocations(source) == []

    def test_skips_macro_definition(self):
        """The macro_rules! definition itself is skipped."""
        source = "macro_rules! impl_twice { ($($t:tt)*) => {}; }\nimpl_twice!(impl A, B {});\n"
        invocations = find_invocations(source)
        assert len(invocations) == 1
        assert invocations[0].line == 2

    def test_name_without_arguments_warns(self):
        """A bare macro name is left alone with a warning."""
        with pytest.warns(UserWarning, match="left unchanged"):
            assert find_invocations("use impl_twice! ;") == []

    def test_unclosed_call(self):
        """A call whose delimiter never closes is an error at the opener."""
        with pytest.raises(ImplSyntaxError) as exc:
            find_invocations("impl_twice!(impl A, B {}")
        assert exc.value.kind == SyntaxErrorKind.UNTERMINATED_BODY
        assert (exc.value.line, exc.value.column) == (1, 12)


class TestExpandSource:
    """Splicing expanded blocks into source text."""

    def test_source_file(self):
        """The example file expands in place, the rest untouched."""
        assert expand_source(SOURCE_FILE) == EXPANDED_SOURCE_FILE

    def test_no_calls_is_identity(self):
        """A file without calls comes back unchanged."""
        source = "fn main() {\n    println!(\"{}\", 1);\n}\n"
        assert expand_source(source) == source

    def test_indented_call(self):
        """Blocks line up with an indented call site."""
        source = "mod m {\n    impl_twice!(impl A, B {});\n}\n"
        assert expand_source(source) == "mod m {\n    impl A {}\n\n    impl B {}\n}\n"

    def test_brace_delimited_call(self):
        """impl_twice! { ... } needs no semicolon."""
        assert expand_source("impl_twice! { impl A, B {} }\n") == "impl A {}\n\nimpl B {}\n"

    def test_qualified_path(self):
        """The path prefix is replaced along with the call."""
        source = "impl_twice::impl_twice!(impl A, B {});"
        assert expand_source(source) == "impl A {}\n\nimpl B {}"

    def test_several_calls(self):
        """Every call in a file is expanded."""
        source = "impl_twice!(impl A, B {});\nfn x() {}\nimpl_twice!(impl C, D {});\n"
        assert expand_source(source) == (
            "impl A {}\n\nimpl B {}\nfn x() {}\nimpl C {}\n\nimpl D {}\n"
        )

    def test_custom_macro_name(self):
        """Only the named macro is expanded."""
        source = "twice!(impl A, B {});\nimpl_twice!(impl C, D {});\n"
        assert expand_source(source, macro_name="twice") == (
            "impl A {}\n\nimpl B {}\nimpl_twice!(impl C, D {});\n"
        )

    def test_macro_name_from_options(self):
        """The macro name can come from EmitOptions."""
        source = "twice!(impl A, B {});"
        options = EmitOptions(macro_name="twice")
        assert expand_source(source, options=options) == "impl A {}\n\nimpl B {}"

    def test_annotated(self):
        """Options reach the rendered blocks."""
        output = expand_source("impl_twice!(impl A, B {});", options=EmitOptions(annotate=True))
        assert output.startswith("// impl_twice: expansion 1 of 2 (A)\nimpl A {}")

    def test_error_is_located_in_file(self):
        """Errors point at the line and column in the file."""
        source = "fn main() {}\n\nimpl_twice!(\n    impl A B {}\n);\n"
        with pytest.raises(ImplSyntaxError) as exc:
            expand_source(source)
        assert exc.value.kind == SyntaxErrorKind.MISSING_TARGET_SEPARATOR
        assert (exc.value.line, exc.value.column) == (4, 12)

    def test_error_on_call_line(self):
        """On the call's own line the column is shifted by the prefix."""
        with pytest.raises(ImplSyntaxError) as exc:
            expand_source("impl_twice!(impl A B {});")
        assert (exc.value.line, exc.value.column) == (1, 20)


class TestExpandFile:
    """Reading, splicing and writing files."""

    def test_output_path(self, tmp_path):
        """With an output path the source is left untouched."""
        src = tmp_path / "lib.rs"
        out = tmp_path / "out.rs"
        src.write_text(SOURCE_FILE, encoding="utf-8")
        assert expand_file(str(src), output=str(out)) == 1
        assert out.read_text(encoding="utf-8") == EXPANDED_SOURCE_FILE
        assert src.read_text(encoding="utf-8") == SOURCE_FILE

    def test_in_place(self, tmp_path):
        """Without an output path the file is rewritten."""
        src = tmp_path / "lib.rs"
        src.write_text(SOURCE_FILE, encoding="utf-8")
        assert expand_file(str(src)) == 1
        assert src.read_text(encoding="utf-8") == EXPANDED_SOURCE_FILE

    def test_no_calls_leaves_file_alone(self, tmp_path):
        """A file without calls is not rewritten."""
        src = tmp_path / "lib.rs"
        src.write_text("fn main() {}\n", encoding="utf-8")
        assert expand_file(str(src)) == 0
        assert src.read_text(encoding="utf-8") == "fn main() {}\n"

    def test_error_writes_nothing(self, tmp_path):
        """One bad call means no partial output."""
        src = tmp_path / "lib.rs"
        source = "impl_twice!(impl A, B {});\nimpl_twice!(impl C D {});\n"
        src.write_text(source, encoding="utf-8")
        with pytest.raises(ImplSyntaxError):
            expand_file(str(src))
        assert src.read_text(encoding="utf-8") == source

    def test_missing_file(self, tmp_path):
        """A missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            expand_file(str(tmp_path / "missing.rs"))
