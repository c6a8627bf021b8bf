"""
Tests for the expander (SharedSpec -> SingleSpecs).

Expansion is pure duplication: one SingleSpec per target, in target
order, each carrying the same generics, trait, where clause and body.
"""

import pytest

from impltwice.errors import SingleTargetWarning
from impltwice.examples import DEBUG_TRAIT, PER_HEADER_GENERICS, WRAPPED_SLICE, build_example_spec
from impltwice.expander import expand, expand_all
from impltwice.parser import parse, parse_invocation


class TestExpand:
    """One SharedSpec in, one SingleSpec per target out."""

    def test_one_single_per_target_in_order(self):
        """Targets come out in source order with their positions."""
        spec = parse(WRAPPED_SLICE)
        singles = expand(spec)
        assert [s.target for s in singles] == list(spec.targets)
        assert [s.index for s in singles] == [0, 1]
        assert all(s.total == 2 for s in singles)

    def test_shared_parts_are_identical(self):
        """Every expansion gets the same generics, trait, where clause and body."""
        spec = parse(DEBUG_TRAIT)
        singles = expand(spec)
        assert len(singles) == 3
        for single in singles:
            assert single.generics == spec.generics
            assert single.trait_ref == spec.trait_ref
            assert single.where_clause == spec.where_clause
            assert single.body == spec.body
            assert single.body.text == spec.body.text

    def test_three_empty_bodies(self):
        """Empty bodies are duplicated like any other."""
        singles = expand(parse("impl X, Y, Z {}"))
        assert [s.target.text for s in singles] == ["X", "Y", "Z"]
        assert all(s.body.is_empty for s in singles)

    def test_hand_built_spec(self):
        """Specs built without the parser expand the same way."""
        singles = expand(build_example_spec())
        assert [s.target.text for s in singles] == ["WrappedSlice<'_, T>", "WrappedSliceMut<'_, T>"]

    def test_deterministic(self):
        """Expanding twice gives equal results."""
        spec = parse(DEBUG_TRAIT)
        assert expand(spec) == expand(spec)

    def test_spec_is_not_modified(self):
        """The input spec is left as it was."""
        spec = parse(WRAPPED_SLICE)
        before = (spec.generics, spec.targets, spec.body.text)
        expand(spec)
        assert (spec.generics, spec.targets, spec.body.text) == before

    def test_single_target_warns(self):
        """A single target still expands, with a SingleTargetWarning."""
        with pytest.warns(SingleTargetWarning, match="Foo"):
            singles = expand(parse("impl Foo { fn f() {} }"))
        assert len(singles) == 1
        assert singles[0].total == 1


class TestExpandAll:
    """Several specs from one invocation."""

    def test_keeps_spec_order(self):
        """Spec order is kept and numbering restarts per spec."""
        specs = parse_invocation("impl A, B {}\nimpl C, D, E {}")
        singles = expand_all(specs)
        assert [s.target.text for s in singles] == ["A", "B", "C", "D", "E"]
        assert [(s.index, s.total) for s in singles] == [(0, 2), (1, 2), (0, 3), (1, 3), (2, 3)]

    def test_per_header_generics(self):
        """Each header keeps its own generics and where clause."""
        with pytest.warns(SingleTargetWarning):
            singles = expand_all(parse_invocation(PER_HEADER_GENERICS))
        assert [s.target.text for s in singles] == ["Complex<A, B>", "Simple<T>"]
        assert [p.name for p in singles[0].generics] == ["A", "B"]
        assert [p.name for p in singles[1].generics] == ["T"]
        assert singles[0].body == singles[1].body

    def test_empty(self):
        """No specs, no expansions."""
        assert expand_all([]) == []
