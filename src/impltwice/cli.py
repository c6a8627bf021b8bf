"""
Command-line front end.

    impltwice expand src/lib.rs -o build/lib.rs
    impltwice expand src/lib.rs --in-place --annotate
    impltwice dump invocation.txt --format yaml --expanded
    impltwice check src/lib.rs

Exit status: 0 on success, 1 on a syntax error, 2 on usage or config errors.
"""

import argparse
import sys
from dataclasses import replace
from typing import List, Optional

from impltwice import __version__
from impltwice.analyzer import analyze_specs
from impltwice.config import ConfigError, EmitOptions, load_options
from impltwice.errors import ImplSyntaxError
from impltwice.expander import expand_all
from impltwice.parser import parse_invocation, parse_invocation_file
from impltwice.serialization import specs_to_json, specs_to_yaml
from impltwice.splice import expand_file, expand_source, find_invocations


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="impltwice",
        description="Expand impl_twice! invocations into one impl block per target type",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)

    expand = subparsers.add_parser("expand", help="Replace impl_twice! calls in a Rust file")
    expand.add_argument("file", help="Rust source file")
    target = expand.add_mutually_exclusive_group()
    target.add_argument("-o", "--output", help="Write the expanded source here")
    target.add_argument("--in-place", action="store_true", help="Rewrite FILE itself")
    expand.add_argument("--macro", dest="macro_name", help="Macro name to expand")
    expand.add_argument("--annotate", action="store_true", help="Comment each generated block")
    expand.add_argument("--config", help="YAML file with emit options")

    dump = subparsers.add_parser("dump", help="Print the parsed specs of a bare invocation")
    dump.add_argument("file", help="File holding the macro argument text")
    dump.add_argument("--format", choices=["json", "yaml"], default="yaml")
    dump.add_argument("--expanded", action="store_true", help="Dump one spec per target")

    check = subparsers.add_parser("check", help="Parse and lint every call in a Rust file")
    check.add_argument("file", help="Rust source file")
    check.add_argument("--macro", dest="macro_name", help="Macro name to check")
    check.add_argument("--config", help="YAML file with emit options")

    return parser


def _load(args: argparse.Namespace) -> EmitOptions:
    options = load_options(args.config) if getattr(args, "config", None) else EmitOptions()
    if getattr(args, "macro_name", None):
        options = replace(options, macro_name=args.macro_name)
    if getattr(args, "annotate", False):
        options = replace(options, annotate=True)
    return options


def _read(path: str) -> str:
    with open(path, "r", encoding="utf-8") as f:
        return f.read()


def _run_expand(args: argparse.Namespace) -> int:
    options = _load(args)
    if args.in_place or args.output:
        count = expand_file(args.file, output=args.output, options=options)
        print(f"{args.file}: expanded {count} invocation(s)", file=sys.stderr)
        return 0
    sys.stdout.write(expand_source(_read(args.file), options=options))
    return 0


def _run_dump(args: argparse.Namespace) -> int:
    specs = parse_invocation_file(args.file)
    if args.expanded:
        specs = expand_all(specs)
    if args.format == "json":
        print(specs_to_json(specs))
    else:
        sys.stdout.write(specs_to_yaml(specs))
    return 0


def _run_check(args: argparse.Namespace) -> int:
    options = _load(args)
    source = _read(args.file)
    invocations = find_invocations(source, options.macro_name)
    expansions = 0
    for invocation in invocations:
        try:
            specs = parse_invocation(invocation.inner)
        except ImplSyntaxError as e:
            raise e.relocated(invocation.inner_line, invocation.inner_column) from e
        report = analyze_specs(specs)
        expansions += report.expansion_count
        for warning in report.warnings:
            print(f"{args.file}:{invocation.line}:{invocation.column}: warning: {warning}")
    print(f"{args.file}: {len(invocations)} invocation(s), {expansions} expansion(s)")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    handlers = {"expand": _run_expand, "dump": _run_dump, "check": _run_check}
    try:
        return handlers[args.command](args)
    except ImplSyntaxError as e:
        print(f"{args.file}:{e}", file=sys.stderr)
        return 1
    except (ConfigError, OSError) as e:
        print(f"impltwice: error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    sys.exit(main())
