"""
Expander: one SharedSpec -> one SingleSpec per target.

Pure structural duplication. The body is never inspected, substituted or
specialised; resolving ``Self`` for each block is left to rustc, which
sees every emitted block as an ordinary hand-written impl.

IMPORTANT:
    expand() is total. Every well-formed SharedSpec expands, and output
    order is exactly source target order.
"""

import warnings
from typing import Iterable, List

from impltwice.errors import SingleTargetWarning
from impltwice.model import SharedSpec, SingleSpec


def expand(spec: SharedSpec) -> List[SingleSpec]:
    """
    Duplicate a SharedSpec once per target.

    Args:
        spec: Parsed header with its targets and body

    Returns:
        SingleSpecs in target order; each shares the (immutable) generics,
        trait, where clause and body of ``spec``
    """
    total = len(spec.targets)
    if total == 1:
        warnings.warn(
            f"only one target ({spec.targets[0].text}); the body is not duplicated",
            SingleTargetWarning,
            stacklevel=2,
        )
    return [
        SingleSpec(
            generics=spec.generics,
            trait_ref=spec.trait_ref,
            target=target,
            body=spec.body,
            where_clause=spec.where_clause,
            index=index,
            total=total,
        )
        for index, target in enumerate(spec.targets)
    ]


def expand_all(specs: Iterable[SharedSpec]) -> List[SingleSpec]:
    """Expand several specs, keeping spec order and target order within each."""
    singles: List[SingleSpec] = []
    for spec in specs:
        singles.extend(expand(spec))
    return singles


__all__ = ["expand", "expand_all"]
