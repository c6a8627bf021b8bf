"""
Rust impl-block generator for expanded specs.

Turns SingleSpecs back into standalone Rust:

    impl<'a, T: Clone> Trait for Target<'a, T> where T: Send {<body>}

Header fragments are rendered from tokens, so the output depends only on
what was parsed. The body is copied byte for byte; attributes, doc
comments and visibility modifiers inside it come out exactly as written.
"""

from typing import List, Optional, Sequence

from impltwice.config import EmitOptions
from impltwice.model import SingleSpec


def render_header(single: SingleSpec) -> str:
    """Render ``impl<...> [Trait for] Target [where ...]`` without the body."""
    header = "impl"
    if single.generics:
        header += "<" + ", ".join(param.text for param in single.generics) + ">"
    header += " "
    if single.trait_ref is not None:
        header += f"{single.trait_ref.text} for "
    header += single.target.text
    if single.where_clause is not None:
        header += f" where {single.where_clause.text}"
    return header


def _annotation(single: SingleSpec) -> str:
    return f"// impl_twice: expansion {single.index + 1} of {single.total} ({single.target.text})"


def render_single(
    single: SingleSpec, options: Optional[EmitOptions] = None, indent: str = ""
) -> str:
    """
    Render one standalone impl block.

    Args:
        single: Spec to render
        options: Layout options (defaults if None)
        indent: Prefix for the header line when an annotation precedes it

    Returns:
        Block text without a trailing newline
    """
    options = options or EmitOptions()
    block = f"{render_header(single)} {{{single.body.text}}}"
    if options.annotate:
        block = f"{_annotation(single)}\n{indent}{block}"
    return block


def render(
    singles: Sequence[SingleSpec], options: Optional[EmitOptions] = None, indent: str = ""
) -> str:
    """
    Render expanded specs as consecutive impl blocks.

    Args:
        singles: Specs in the order they should appear
        options: Layout options (defaults if None)
        indent: Prefix for every block after the first, so spliced output
            lines up with an indented call site

    Returns:
        Rust source text; empty string if there is nothing to render
    """
    options = options or EmitOptions()
    blocks: List[str] = [render_single(single, options, indent) for single in singles]
    if not blocks:
        return ""

    text = (options.separator + indent).join(blocks)
    if options.trailing_newline and not text.endswith("\n"):
        text += "\n"
    return text


def save_rendered(
    singles: Sequence[SingleSpec], filename: str, options: Optional[EmitOptions] = None
) -> None:
    """
    Render and save to file.

    Args:
        singles: Specs to render
        filename: Output file path (.rs extension recommended)
        options: Layout options
    """
    text = render(singles, options=options)
    with open(filename, "w", encoding="utf-8") as f:
        f.write(text)


__all__ = ["render", "render_single", "render_header", "save_rendered"]
