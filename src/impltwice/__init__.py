"""
impltwice: write an impl body once, implement it for several types.

Pipeline:
    invocation text -> parser -> SharedSpec -> expander -> SingleSpecs
    -> rust backend -> impl blocks spliced where the call was

ARCHITECTURAL GUARANTEE:
------------------------
The engine duplicates structure only. It never reads, rewrites or
type-checks the items inside a body; rustc does that on the output.
"""

__version__ = "0.1.0"
