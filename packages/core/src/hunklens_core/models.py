"""Data model shared by every stage of the review pipeline.

All records live for a single run only. Nothing here is persisted.
"""

from __future__ import annotations

from dataclasses import dataclass


class InvalidFinding(ValueError):
    """A model-emitted review item that cannot be turned into a comment."""


@dataclass(frozen=True)
class Change:
    """One line of a diff hunk, keeping its ``+``/``-``/space prefix."""

    content: str
    source_line: int | None = None
    target_line: int | None = None

    @property
    def effective_line(self) -> int | None:
        # Removed lines have no target line number.
        return self.target_line if self.target_line is not None else self.source_line


@dataclass(frozen=True)
class Chunk:
    header: str
    changes: tuple[Change, ...] = ()

    @property
    def content(self) -> str:
        return self.header


@dataclass(frozen=True)
class ParsedFile:
    path: str | None  # None when the file was deleted
    chunks: tuple[Chunk, ...] = ()


@dataclass(frozen=True)
class PullRequestContext:
    owner: str
    repo: str
    pull_number: int
    title: str = ""
    description: str = ""


@dataclass(frozen=True)
class ReviewFinding:
    """A single review observation as emitted by the model.

    The line number is kept as the raw string the model produced; it is only
    coerced when the finding is turned into a comment, so a bad value costs
    that one comment and nothing else.
    """

    line_number: str
    review_comment: str

    @classmethod
    def from_payload(cls, item: object) -> ReviewFinding:
        if not isinstance(item, dict):
            raise InvalidFinding(f"expected an object, got {type(item).__name__}")
        line_number = item.get("lineNumber")
        comment = item.get("reviewComment")
        if line_number is None or isinstance(line_number, (bool, list, dict)):
            raise InvalidFinding(f"missing or malformed lineNumber: {line_number!r}")
        if not isinstance(comment, str) or not comment.strip():
            raise InvalidFinding("missing reviewComment")
        if isinstance(line_number, float) and line_number.is_integer():
            line_number = int(line_number)
        return cls(line_number=str(line_number).strip(), review_comment=comment)

    def line(self) -> int:
        try:
            value = int(self.line_number)
        except ValueError:
            raise InvalidFinding(f"non-numeric lineNumber: {self.line_number!r}")
        if value < 1:
            raise InvalidFinding(f"lineNumber out of range: {value}")
        return value


@dataclass(frozen=True)
class CommentRecord:
    body: str
    path: str
    line: int

