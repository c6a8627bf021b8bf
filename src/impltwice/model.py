"""
Core Declaration Model Objects

Defines the data structures that sit between the parser and the emitter:
    - Generic parameters (lifetime, type, const)
    - Fragments (target types, trait references, where predicates)
    - Bodies (the shared declaration items)
    - SharedSpec (one header, many targets)
    - SingleSpec (one header, one target)

ARCHITECTURAL RULE:
    These objects:
        - Are immutable (frozen dataclasses, tuples)
        - Never look inside a body
        - Represent structure, not Rust semantics

Because everything is immutable, handing the same GenericParam or Body to
several SingleSpecs is as good as cloning it: no expansion can change what
another one sees.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from impltwice.tokens import join_tokens


class GenericKind(Enum):
    """The three kinds of generic parameter an impl header can declare."""

    LIFETIME = "lifetime"
    TYPE = "type"
    CONST = "const"


@dataclass(frozen=True)
class GenericParam:
    """
    One parameter of the ``impl<...>`` list.

    Properties:
        name:
            Parameter name; lifetimes keep their quote ("'a")

        kind:
            GenericKind of the parameter

        bounds:
            Rendered bounds in source order, e.g. ("Clone", "Send")
            Empty when the parameter has no ``:`` clause

        const_type:
            Declared type of a const parameter ("usize"); None otherwise

        default:
            Rendered default after ``=``, if any

    Examples:
        GenericParam("'a", GenericKind.LIFETIME, bounds=("'b",))   ->  'a: 'b
        GenericParam("T", bounds=("Clone", "Send"))                ->  T: Clone + Send
        GenericParam("N", GenericKind.CONST, const_type="usize")   ->  const N: usize
    """

    name: str
    kind: GenericKind = GenericKind.TYPE
    bounds: Tuple[str, ...] = ()
    const_type: Optional[str] = None
    default: Optional[str] = None

    @property
    def text(self) -> str:
        if self.kind == GenericKind.CONST:
            rendered = f"const {self.name}: {self.const_type}"
        else:
            rendered = self.name
            if self.bounds:
                rendered += ": " + " + ".join(self.bounds)
        if self.default is not None:
            rendered += f" = {self.default}"
        return rendered

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class Fragment:
    """
    An opaque run of header tokens.

    Two fragments are equal when their tokens are equal, so layout and
    whitespace never matter. ``text`` renders the tokens with
    conventional spacing.

    DO NOT:
        - Resolve paths or names here
        - Rewrite tokens per target
    """

    tokens: Tuple[str, ...]

    @property
    def text(self) -> str:
        return join_tokens(self.tokens)

    def mentions(self, name: str) -> bool:
        """True if ``name`` occurs as a token of this fragment."""
        return name in self.tokens

    def __str__(self) -> str:
        return self.text


@dataclass(frozen=True)
class TypeExpr(Fragment):
    """
    A target type, e.g. ``WrappedSlice<'_, T>``.

    One TypeExpr is one target; it may use the header's generics.
    """
    pass


@dataclass(frozen=True)
class TraitRef(Fragment):
    """
    The trait being implemented, e.g. ``Debug`` or ``From<&'a str>``.

    When present it is identical for every expansion of a header.
    """
    pass


@dataclass(frozen=True)
class WhereClause(Fragment):
    """
    Where predicates without the ``where`` keyword, e.g. ``T: Clone``.

    Written either as ``where (T: Clone)`` or ``where T: Clone``; both
    parse to the same tokens.
    """
    pass


@dataclass(frozen=True)
class Body:
    """
    The shared declaration items between the braces.

    Properties:
        text:
            Verbatim source between ``{`` and ``}``, byte for byte

        tokens:
            Token texts of the body (plain comments and whitespace removed)

    IMPORTANT:
        Equality compares tokens only, so two bodies that differ in
        layout are equal. Emission always uses ``text``.
    """

    text: str = field(compare=False)
    tokens: Tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.tokens


@dataclass(frozen=True)
class SharedSpec:
    """
    One parsed header with all of its targets.

    Properties:
        generics:
            Parameters of ``impl<...>``, shared by every target

        trait_ref:
            Trait implemented by every target, or None for inherent impls

        targets:
            Target types in source order

        body:
            Items every target receives

        where_clause:
            Predicates applied to every target, or None

    INVARIANTS:
        - targets is non-empty (one target is the degenerate case)
        - generics, trait_ref and where_clause apply to every target alike
    """

    generics: Tuple[GenericParam, ...]
    trait_ref: Optional[TraitRef]
    targets: Tuple[TypeExpr, ...]
    body: Body
    where_clause: Optional[WhereClause] = None

    def __post_init__(self):
        if not self.targets:
            raise ValueError("SharedSpec needs at least one target")

    def get_generic(self, name: str) -> Optional[GenericParam]:
        """
        Retrieve a generic parameter by name.

        Args:
            name: Parameter name ("T", "'a", "N")

        Returns:
            GenericParam or None if not declared
        """
        for param in self.generics:
            if param.name == name:
                return param
        return None


@dataclass(frozen=True)
class SingleSpec:
    """
    One header bound to exactly one target.

    Produced by the expander, consumed by the emitter.

    Properties:
        generics, trait_ref, body, where_clause:
            Taken unchanged from the SharedSpec

        target:
            The one type this block implements

        index:
            Zero-based position of this expansion among its siblings

        total:
            Number of siblings produced from the same SharedSpec
    """

    generics: Tuple[GenericParam, ...]
    trait_ref: Optional[TraitRef]
    target: TypeExpr
    body: Body
    where_clause: Optional[WhereClause] = None
    index: int = 0
    total: int = 1


__all__ = [
    "GenericKind",
    "GenericParam",
    "Fragment",
    "TypeExpr",
    "TraitRef",
    "WhereClause",
    "Body",
    "SharedSpec",
    "SingleSpec",
]
