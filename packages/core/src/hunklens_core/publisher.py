"""Comment delivery with a general-comment fallback.

Each comment goes through two stages: the inline sink, then (only if that
failed and the policy allows it) a general pull request comment. Comments
are sent one at a time so a rejected comment never blocks the others.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Protocol

from hunklens_core.models import CommentRecord

logger = logging.getLogger(__name__)


class CommentSink(Protocol):
    def create_inline_comment(self, comment: CommentRecord) -> None: ...

    def create_general_comment(self, body: str) -> None: ...


class GitHubCommentSink:
    """Posts comments to a PyGithub ``PullRequest``."""

    def __init__(self, pr):
        self.pr = pr

    def create_inline_comment(self, comment: CommentRecord) -> None:
        self.pr.create_review(
            event="COMMENT",
            comments=[{"path": comment.path, "line": comment.line, "side": "RIGHT", "body": comment.body}],
        )

    def create_general_comment(self, body: str) -> None:
        self.pr.create_issue_comment(body)


@dataclass(frozen=True)
class FallbackPolicy:
    """Decides what happens to a comment whose inline delivery failed."""

    enabled: bool = True

    def general_comment_body(self, comment: CommentRecord) -> str | None:
        """Return the general comment to post instead, or None to drop the comment."""
        if not self.enabled:
            return None
        return f"Failed to post inline comment on {comment.path}:{comment.line}.\n\n{comment.body}"


@dataclass
class PublishResult:
    inline: int = 0
    fallback: int = 0
    dropped: list[CommentRecord] = field(default_factory=list)
    failures: list[str] = field(default_factory=list)

    @property
    def failed(self) -> bool:
        """True when a comment could be delivered neither inline nor as a fallback."""
        return bool(self.failures)


def _attempt(action: Callable[[], None]) -> Exception | None:
    try:
        action()
    except Exception as e:
        return e
    return None


class CommentPublisher:
    def __init__(self, sink: CommentSink, policy: FallbackPolicy | None = None):
        self.sink = sink
        self.policy = policy or FallbackPolicy()

    def publish(self, comments: list[CommentRecord]) -> PublishResult:
        result = PublishResult()
        for comment in comments:
            error = _attempt(lambda: self.sink.create_inline_comment(comment))
            if error is None:
                result.inline += 1
                continue
            logger.error("Error creating review comment on line %d of %s: %s", comment.line, comment.path, error)

            body = self.policy.general_comment_body(comment)
            if body is None:
                result.dropped.append(comment)
                continue

            error = _attempt(lambda: self.sink.create_general_comment(body))
            if error is None:
                result.fallback += 1
                continue
            logger.error("Error creating fallback general comment: %s", error)
            result.failures.append(f"Failed to create fallback general comment: {error}")
        return result
