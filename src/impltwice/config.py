"""
Emitter configuration.

Options can be built in code or loaded from a YAML file:

    separator: "\n\n"
    trailing_newline: true
    annotate: false
    macro_name: impl_twice
"""
from __future__ import annotations

import re
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict

import yaml


class ConfigError(Exception):
    """Raised when an options file is unreadable or has bad values."""
    pass


_MACRO_NAME_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


@dataclass
class EmitOptions:
    """
    How rendered blocks are laid out.

    Properties:
        separator: Text placed between consecutive blocks
        trailing_newline: End the rendered text with a newline
        annotate: Precede each block with an "expansion i of n" comment
        macro_name: Macro the splicer looks for in source files
    """

    separator: str = "\n\n"
    trailing_newline: bool = True
    annotate: bool = False
    macro_name: str = "impl_twice"


def options_to_dict(options: EmitOptions) -> Dict[str, Any]:
    return asdict(options)


def options_from_dict(d: Dict[str, Any]) -> EmitOptions:
    known = {f.name: f for f in fields(EmitOptions)}
    unknown = sorted(set(d) - set(known))
    if unknown:
        raise ConfigError(f"Unknown option(s): {', '.join(unknown)}")

    defaults = EmitOptions()
    for name, value in d.items():
        expected = type(getattr(defaults, name))
        if not isinstance(value, expected):
            raise ConfigError(
                f"Option '{name}' must be {expected.__name__}, got {type(value).__name__}"
            )

    options = EmitOptions(**d)
    if not _MACRO_NAME_RE.match(options.macro_name):
        raise ConfigError(f"Invalid macro name: {options.macro_name!r}")
    return options


def load_options(filepath: str) -> EmitOptions:
    """
    Load EmitOptions from a YAML file.

    An empty file yields the defaults.

    Raises:
        FileNotFoundError: If file doesn't exist
        ConfigError: If the YAML is invalid or holds unknown/mistyped keys
    """
    with open(filepath, "r", encoding="utf-8") as f:
        content = f.read()
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {filepath}: {e}")

    if data is None:
        return EmitOptions()
    if not isinstance(data, dict):
        raise ConfigError(f"{filepath} must contain a mapping of options")
    return options_from_dict(data)


__all__ = ["EmitOptions", "ConfigError", "options_to_dict", "options_from_dict", "load_options"]
