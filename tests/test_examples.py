"""
Smoke tests for the bundled example invocations.
"""

from impltwice.examples import (
    DEBUG_TRAIT,
    PER_HEADER_GENERICS,
    SOURCE_FILE,
    WRAPPED_SLICE,
    build_example_spec,
)
from impltwice.parser import parse, parse_invocation
from impltwice.splice import find_invocations


def test_hand_built_spec_matches_parser():
    """build_example_spec() equals the parsed text, verbatim body included."""
    text = (
        "impl<T> WrappedSlice<'_, T>, WrappedSliceMut<'_, T> {\n"
        "    pub fn len(&self) -> usize {\n"
        "        self.0.len()\n"
        "    }\n"
        "}"
    )
    parsed = parse(text)
    built = build_example_spec()
    assert parsed == built
    assert parsed.body.text == built.body.text


def test_example_invocations_parse():
    assert len(parse_invocation(WRAPPED_SLICE)) == 1
    assert len(parse_invocation(DEBUG_TRAIT)) == 1
    assert len(parse_invocation(PER_HEADER_GENERICS)) == 2


def test_source_file_has_one_call():
    assert len(find_invocations(SOURCE_FILE)) == 1
