"""Backends for impltwice output generation."""

from .rust_generator import render, render_header, render_single, save_rendered

__all__ = ["render", "render_header", "render_single", "save_rendered"]
