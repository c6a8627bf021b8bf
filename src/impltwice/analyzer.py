"""
Expansion Analyzer: early diagnostics for parsed invocations.

This module provides lightweight, read-only checks of SharedSpecs:
    - Header, target and expansion counts
    - Duplicate targets (would become conflicting impls)
    - Single-target headers (nothing is duplicated)
    - Type/const parameters no target or trait constrains (E0207)

IMPORTANT: This never looks inside a body and never modifies a spec.
It only produces reports.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from impltwice.model import Body, GenericKind, SharedSpec
from impltwice.tokens import tokenize


@dataclass
class ExpansionReport:
    """Analysis report for one invocation (a sequence of SharedSpecs)."""

    header_count: int = 0
    target_count: int = 0
    expansion_count: int = 0
    max_targets_per_header: int = 0

    duplicate_targets: List[str] = field(default_factory=list)
    single_target_headers: List[int] = field(default_factory=list)
    unused_generics: Dict[int, List[str]] = field(default_factory=dict)

    warnings: List[str] = field(default_factory=list)

    def add_warning(self, msg: str) -> None:
        """Add a warning to the report."""
        if msg not in self.warnings:
            self.warnings.append(msg)

    @property
    def ok(self) -> bool:
        return not self.warnings


def _in_projection(tokens: Sequence[str], name: str) -> bool:
    """True if ``name`` occurs on the right of an associated type binding (``Item = T``)."""
    depth = 0
    binding_depth: Optional[int] = None
    for text in tokens:
        if text == "<":
            depth += 1
        elif text in (">", ">>"):
            for _ in text:
                if binding_depth == depth:
                    binding_depth = None
                depth -= 1
        elif text == ",":
            if binding_depth == depth:
                binding_depth = None
        elif text == "=" and depth > 0:
            binding_depth = depth
        elif binding_depth is not None and text == name:
            return True
    return False


def _is_constrained(spec: SharedSpec, name: str) -> bool:
    """
    Whether a type/const parameter is constrained by the header.

    Appearing in a target or the trait constrains it. A where predicate
    or bound only does so through a projection such as
    ``I: Iterator<Item = T>``.
    """
    if any(target.mentions(name) for target in spec.targets):
        return True
    if spec.trait_ref is not None and spec.trait_ref.mentions(name):
        return True
    if spec.where_clause is not None and _in_projection(spec.where_clause.tokens, name):
        return True
    for param in spec.generics:
        for bound in param.bounds:
            if _in_projection([token.text for token in tokenize(bound)], name):
                return True
    return False


def analyze_specs(specs: Sequence[SharedSpec]) -> ExpansionReport:
    """
    Analyze the specs parsed from one invocation.

    Two impls of one trait for one target conflict whatever their bodies
    (E0119). Inherent duplicates are reported only when the body matches
    as well.

    Lifetimes are not checked for use: an unused lifetime on an impl is
    legal Rust, an unconstrained type or const parameter is not (E0207).

    Returns an ExpansionReport with counts and warnings.
    """
    report = ExpansionReport()
    report.header_count = len(specs)

    seen: Dict[Tuple[Tuple[str, ...] | None, Tuple[str, ...], Body | None], int] = {}

    for header_index, spec in enumerate(specs):
        count = len(spec.targets)
        report.target_count += count
        report.expansion_count += count
        report.max_targets_per_header = max(report.max_targets_per_header, count)

        if count == 1:
            report.single_target_headers.append(header_index)

        trait_key = spec.trait_ref.tokens if spec.trait_ref is not None else None
        body_key = spec.body if trait_key is None else None
        for target in spec.targets:
            key = (trait_key, target.tokens, body_key)
            seen[key] = seen.get(key, 0) + 1
            if seen[key] == 2:
                label = target.text
                if spec.trait_ref is not None:
                    label = f"{spec.trait_ref.text} for {label}"
                report.duplicate_targets.append(label)

        unused = [
            param.name
            for param in spec.generics
            if param.kind != GenericKind.LIFETIME and not _is_constrained(spec, param.name)
        ]
        if unused:
            report.unused_generics[header_index] = unused

    # =========================================================================
    # WARNING FLAGS
    # =========================================================================

    if report.duplicate_targets:
        report.add_warning(
            f"Duplicate targets (conflicting impls): {', '.join(report.duplicate_targets)}"
        )

    for header_index in report.single_target_headers:
        target = specs[header_index].targets[0].text
        report.add_warning(
            f"Header {header_index + 1} has a single target ({target}); nothing is duplicated"
        )

    for header_index, names in report.unused_generics.items():
        report.add_warning(
            f"Header {header_index + 1}: generic parameter(s) {', '.join(names)} "
            f"not constrained by any target or trait"
        )

    return report


__all__ = ["ExpansionReport", "analyze_specs"]
