"""
Errors and warnings raised while reading impl_twice invocations.

All failures are detected while lexing or parsing. Expansion and emission
are total over a parsed SharedSpec and never raise these.
"""

from enum import Enum
from typing import Optional


class SyntaxErrorKind(Enum):
    """
    Failure categories for invocation syntax.

    The first four are the core taxonomy. The rest cover input the core
    grammar never gets far enough to classify.
    """

    UNTERMINATED_BODY = "UnterminatedBody"
    EMPTY_TARGET_LIST = "EmptyTargetList"
    MALFORMED_GENERICS = "MalformedGenerics"
    MISSING_TARGET_SEPARATOR = "MissingTargetSeparator"

    MISSING_IMPL_KEYWORD = "MissingImplKeyword"
    MISMATCHED_TRAIT_REF = "MismatchedTraitRef"
    UNEXPECTED_TOKEN = "UnexpectedToken"
    INVALID_TOKEN = "InvalidToken"


class ImplSyntaxError(Exception):
    """
    Raised when an invocation cannot be parsed.

    Properties:
        kind: SyntaxErrorKind category
        message: Human-readable description
        line, column: 1-based location of the offending token (None if unknown)
    """

    def __init__(
        self,
        kind: SyntaxErrorKind,
        message: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
    ):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.line = line
        self.column = column

    def __str__(self) -> str:
        if self.line is None:
            return f"{self.message} [{self.kind.value}]"
        return f"{self.line}:{self.column}: {self.message} [{self.kind.value}]"

    def relocated(self, line: int, column: int) -> "ImplSyntaxError":
        """
        Return a copy located relative to an enclosing file.

        Args:
            line, column: Where the parsed text starts inside the file

        Returns:
            New ImplSyntaxError with file-relative line/column
        """
        if self.line is None:
            return ImplSyntaxError(self.kind, self.message, line, column)
        if self.line == 1:
            return ImplSyntaxError(self.kind, self.message, line, self.column + column - 1)
        return ImplSyntaxError(self.kind, self.message, self.line + line - 1, self.column)


class SingleTargetWarning(UserWarning):
    """Issued when a header names only one target, so nothing is duplicated."""
    pass


__all__ = ["SyntaxErrorKind", "ImplSyntaxError", "SingleTargetWarning"]
