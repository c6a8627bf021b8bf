#!/usr/bin/env python3
"""
Demo: Expand the bundled example invocations into Rust impl blocks.

Shows a plain multi-target header, a trait header, per-header generics
and a whole source file being spliced.
"""

from impltwice.analyzer import analyze_specs
from impltwice.backends import render
from impltwice.config import EmitOptions
from impltwice.examples import DEBUG_TRAIT, PER_HEADER_GENERICS, SOURCE_FILE, WRAPPED_SLICE
from impltwice.expander import expand_all
from impltwice.parser import parse_invocation
from impltwice.splice import expand_source


def main():
    print("=" * 80)
    print("IMPL_TWICE EXPANSION DEMO")
    print("=" * 80)

    examples = [
        ("wrapped slice", WRAPPED_SLICE),
        ("debug trait", DEBUG_TRAIT),
        ("per-header generics", PER_HEADER_GENERICS),
    ]

    for title, text in examples:
        print(f"\n{title.upper()}:")
        print("-" * 80)

        specs = parse_invocation(text)
        report = analyze_specs(specs)
        print(f"   headers: {report.header_count}, expansions: {report.expansion_count}")
        for warning in report.warnings:
            print(f"   warning: {warning}")
        print()
        print(render(expand_all(specs), options=EmitOptions(annotate=True)))

    print("\nSOURCE FILE:")
    print("-" * 80)
    print(expand_source(SOURCE_FILE))
    print("=" * 80)


if __name__ == "__main__":
    main()
