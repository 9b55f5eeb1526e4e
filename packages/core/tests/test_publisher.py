"""Tests for comment delivery and the general-comment fallback."""

from unittest.mock import MagicMock

from hunklens_core.models import CommentRecord
from hunklens_core.publisher import CommentPublisher, FallbackPolicy, GitHubCommentSink

COMMENTS = [
    CommentRecord(body="first", path="a.py", line=1),
    CommentRecord(body="second", path="b.py", line=2),
    CommentRecord(body="third", path="c.py", line=3),
]


class RecordingSink:
    def __init__(self, fail_inline=(), fail_general=False):
        self.fail_inline = set(fail_inline)
        self.fail_general = fail_general
        self.inline = []
        self.general = []

    def create_inline_comment(self, comment):
        if comment.path in self.fail_inline:
            raise RuntimeError("Unprocessable Entity: line must be part of the diff")
        self.inline.append(comment)

    def create_general_comment(self, body):
        self.general.append(body)
        if self.fail_general:
            raise RuntimeError("Forbidden")


class TestFallbackPolicy:
    def test_body_prefixed_with_location(self):
        body = FallbackPolicy(enabled=True).general_comment_body(COMMENTS[1])
        assert body == "Failed to post inline comment on b.py:2.\n\nsecond"

    def test_disabled_policy_drops(self):
        assert FallbackPolicy(enabled=False).general_comment_body(COMMENTS[0]) is None


class TestCommentPublisher:
    def test_all_inline_in_order(self):
        sink = RecordingSink()
        result = CommentPublisher(sink).publish(COMMENTS)
        assert sink.inline == COMMENTS
        assert sink.general == []
        assert result.inline == 3
        assert result.failed is False

    def test_failure_does_not_block_later_comments(self):
        sink = RecordingSink(fail_inline={"a.py"})
        CommentPublisher(sink, FallbackPolicy(enabled=False)).publish(COMMENTS)
        assert [c.path for c in sink.inline] == ["b.py", "c.py"]

    def test_one_fallback_per_failed_inline_comment(self):
        sink = RecordingSink(fail_inline={"a.py", "c.py"})
        result = CommentPublisher(sink, FallbackPolicy(enabled=True)).publish(COMMENTS)
        assert len(sink.general) == 2
        assert sink.general[0].startswith("Failed to post inline comment on a.py:1.")
        assert result.fallback == 2
        assert result.inline == 1
        assert result.failed is False

    def test_no_fallback_when_disabled(self):
        sink = RecordingSink(fail_inline={"a.py", "b.py"})
        result = CommentPublisher(sink, FallbackPolicy(enabled=False)).publish(COMMENTS)
        assert sink.general == []
        assert [c.path for c in result.dropped] == ["a.py", "b.py"]
        assert result.failed is False

    def test_failed_fallback_marks_run_failed(self):
        sink = RecordingSink(fail_inline={"b.py"}, fail_general=True)
        result = CommentPublisher(sink, FallbackPolicy(enabled=True)).publish(COMMENTS)
        assert len(sink.general) == 1
        assert result.failed is True
        assert "Forbidden" in result.failures[0]
        # Comments already published stand.
        assert [c.path for c in sink.inline] == ["a.py", "c.py"]

    def test_empty_list(self):
        result = CommentPublisher(RecordingSink()).publish([])
        assert result.inline == 0
        assert result.failed is False


class TestGitHubCommentSink:
    def test_inline_comment_posted_as_single_comment_review(self):
        pr = MagicMock()
        GitHubCommentSink(pr).create_inline_comment(COMMENTS[0])
        pr.create_review.assert_called_once_with(
            event="COMMENT",
            comments=[{"path": "a.py", "line": 1, "side": "RIGHT", "body": "first"}],
        )

    def test_general_comment_posted_on_issue(self):
        pr = MagicMock()
        GitHubCommentSink(pr).create_general_comment("hello")
        pr.create_issue_comment.assert_called_once_with("hello")
