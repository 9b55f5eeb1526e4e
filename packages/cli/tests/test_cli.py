"""Tests for the CLI entry point: the action and review commands."""

import json
from unittest.mock import MagicMock

import pytest
from click.testing import CliRunner

from hunklens_cli.cli import main
from hunklens_cli.commands import review as review_module
from hunklens_core.pricing import TokenUsage
from hunklens_core.providers.base import BaseReviewer, ModelResponse

DIFF = """\
diff --git a/src/app.py b/src/app.py
index 83db48f..bf269f4 100644
--- a/src/app.py
+++ b/src/app.py
@@ -8,3 +8,4 @@ def main():
 start()
-timeout = 10
+timeout = 30
+retries = 3
 run()
"""

# Clears anything the host environment might leak into config loading.
CLEAN_ENV = {
    "GITHUB_TOKEN": None,
    "OPENAI_API_KEY": None,
    "ANTHROPIC_API_KEY": None,
    "INPUT_ANTHROPIC_API_KEY": None,
    "INPUT_EXCLUDE_PATTERNS": None,
    "INPUT_CUSTOM_PROMPT": None,
    "INPUT_FALLBACK_TO_GENERAL_COMMENT": None,
}


class StubReviewer(BaseReviewer):
    """Returns one finding per chunk and reports a fixed token count."""

    def __init__(self, model="gpt-4o-mini-2024-07-18", usage=None):
        super().__init__(model, usage or TokenUsage())

    async def _call_api(self, prompt):
        payload = {"reviews": [{"lineNumber": 9, "reviewComment": "Magic number"}]}
        return ModelResponse(json.dumps(payload), prompt_tokens=1_000_000, completion_tokens=500_000)


def _read_outputs(path):
    """Parse the heredoc records written to $GITHUB_OUTPUT."""
    outputs = {}
    lines = path.read_text().splitlines()
    i = 0
    while i < len(lines):
        name, delimiter = lines[i].split("<<", 1)
        end = lines.index(delimiter, i + 1)
        outputs[name] = "\n".join(lines[i + 1 : end])
        i = end + 1
    return outputs


def _make_pr():
    pr = MagicMock(number=12, title="Tune timeouts", body="Raise the timeout.")
    pr.get_files.return_value = [MagicMock(filename="src/app.py")]
    return pr


@pytest.fixture
def event_file(tmp_path):
    def _write(action="opened", **extra):
        path = tmp_path / "event.json"
        event = {"action": action, "number": 12, "repository": {"name": "app", "owner": {"login": "octo"}}}
        event.update(extra)
        path.write_text(json.dumps(event))
        return path

    return _write


class TestActionCommand:
    def _invoke(self, tmp_path, event_path, **env):
        runner = CliRunner()
        full_env = {
            **CLEAN_ENV,
            "INPUT_GITHUB_TOKEN": "gh-token",
            "INPUT_OPENAI_API_KEY": "oai-key",
            "INPUT_OPENAI_API_MODEL": "gpt-4o-mini-2024-07-18",
            "GITHUB_OUTPUT": str(tmp_path / "github_output"),
            **env,
        }
        args = ["--config", str(tmp_path / "none.yml"), "action", "--event-path", str(event_path)]
        return runner.invoke(main, args, env=full_env)

    def _patch_github(self, mocker, pr, diff=DIFF):
        mocker.patch("hunklens_cli.commands.action.get_repo", return_value=MagicMock())
        mocker.patch("hunklens_cli.commands.action.get_pull", return_value=pr)
        mocker.patch("hunklens_cli.commands.action.get_event_diff", return_value=diff)
        mocker.patch(
            "hunklens_cli.commands.action.get_reviewer",
            side_effect=lambda config, usage: StubReviewer(config["model"], usage),
        )

    def test_posts_comments_and_writes_outputs(self, mocker, tmp_path, event_file):
        pr = _make_pr()
        self._patch_github(mocker, pr)

        result = self._invoke(tmp_path, event_file())

        assert result.exit_code == 0, result.output
        pr.create_review.assert_called_once_with(
            event="COMMENT",
            comments=[{"path": "src/app.py", "line": 9, "side": "RIGHT", "body": "Magic number"}],
        )
        outputs = _read_outputs(tmp_path / "github_output")
        assert outputs == {"commentsCount": "1", "totalCost": "0.450"}
        assert "Total Estimated Cost: $0.450" in result.output

    def test_excluded_files_are_not_reviewed(self, mocker, tmp_path, event_file):
        pr = _make_pr()
        self._patch_github(mocker, pr)

        result = self._invoke(tmp_path, event_file(), INPUT_EXCLUDE_PATTERNS="src/**")

        assert result.exit_code == 0, result.output
        pr.create_review.assert_not_called()
        assert _read_outputs(tmp_path / "github_output") == {"commentsCount": "0", "totalCost": "0.000"}

    def test_empty_diff_still_writes_outputs(self, mocker, tmp_path, event_file):
        pr = _make_pr()
        self._patch_github(mocker, pr, diff="")

        result = self._invoke(tmp_path, event_file())

        assert result.exit_code == 0, result.output
        assert "No diff found." in result.output
        assert _read_outputs(tmp_path / "github_output") == {"commentsCount": "0", "totalCost": "0.000"}

    def test_inline_rejection_falls_back_to_general_comment(self, mocker, tmp_path, event_file):
        pr = _make_pr()
        pr.create_review.side_effect = Exception("422 Unprocessable Entity")
        self._patch_github(mocker, pr)

        result = self._invoke(tmp_path, event_file())

        assert result.exit_code == 0, result.output
        body = pr.create_issue_comment.call_args.args[0]
        assert body.startswith("Failed to post inline comment on src/app.py:9.")
        assert body.endswith("Magic number")

    def test_failed_fallback_fails_the_run(self, mocker, tmp_path, event_file):
        pr = _make_pr()
        pr.create_review.side_effect = Exception("422 Unprocessable Entity")
        pr.create_issue_comment.side_effect = Exception("403 Forbidden")
        self._patch_github(mocker, pr)

        result = self._invoke(tmp_path, event_file())

        assert result.exit_code == 1
        assert "::error::Failed to create fallback general comment" in result.output
        assert _read_outputs(tmp_path / "github_output")["commentsCount"] == "1"

    def test_disabled_fallback_drops_comment_without_failing(self, mocker, tmp_path, event_file):
        pr = _make_pr()
        pr.create_review.side_effect = Exception("422 Unprocessable Entity")
        self._patch_github(mocker, pr)

        result = self._invoke(tmp_path, event_file(), INPUT_FALLBACK_TO_GENERAL_COMMENT="false")

        assert result.exit_code == 0, result.output
        pr.create_issue_comment.assert_not_called()

    def test_missing_tokens_fail(self, mocker, tmp_path, event_file):
        self._patch_github(mocker, _make_pr())

        result = self._invoke(tmp_path, event_file(), INPUT_GITHUB_TOKEN=None)

        assert result.exit_code == 1
        assert "::error::Action failed: Missing required authentication tokens" in result.output
        assert not (tmp_path / "github_output").exists()

    def test_unsupported_event_fails(self, mocker, tmp_path, event_file):
        mocker.patch("hunklens_cli.commands.action.get_repo", return_value=MagicMock())
        mocker.patch("hunklens_cli.commands.action.get_pull", return_value=_make_pr())

        result = self._invoke(tmp_path, event_file(action="closed"))

        assert result.exit_code == 1
        assert "Unsupported event" in result.output


class TestReviewCommand:
    def _patch_github(self, mocker, pr):
        mocker.patch("hunklens_cli.commands.review.get_repo", return_value=MagicMock())
        mocker.patch("hunklens_cli.commands.review.get_pull", return_value=pr)
        mocker.patch("hunklens_cli.commands.review.get_pull_diff", return_value=DIFF)
        mocker.patch(
            "hunklens_cli.commands.review.get_reviewer",
            side_effect=lambda config, usage: StubReviewer(config["model"], usage),
        )

    def _invoke(self, tmp_path, *args, **env):
        runner = CliRunner()
        full_env = {**CLEAN_ENV, "GITHUB_TOKEN": "gh-token", "OPENAI_API_KEY": "oai-key", **env}
        return runner.invoke(main, ["--config", str(tmp_path / "none.yml"), "review", *args], env=full_env)

    def test_shadow_prints_without_posting(self, mocker, tmp_path):
        pr = _make_pr()
        self._patch_github(mocker, pr)

        result = self._invoke(tmp_path, "--repo", "octo/app", "--pr", "12", "--shadow")

        assert result.exit_code == 0, result.output
        assert "Magic number" in result.output
        assert "not posted" in result.output
        pr.create_review.assert_not_called()

    def test_posts_inline_comments(self, mocker, tmp_path):
        pr = _make_pr()
        self._patch_github(mocker, pr)

        result = self._invoke(tmp_path, "--repo", "octo/app", "--pr", "12", "--model", "gpt-4o-mini-2024-07-18")

        assert result.exit_code == 0, result.output
        pr.create_review.assert_called_once()
        assert "Total comments: 1" in result.output

    def test_repo_must_be_owner_slash_name(self, tmp_path):
        result = self._invoke(tmp_path, "--repo", "app", "--pr", "12")
        assert result.exit_code == 2
        assert "owner/name" in result.output

    def test_missing_token_is_usage_error(self, mocker, tmp_path):
        mocker.patch("hunklens_cli.auth._gh_cli_token", return_value=None)

        result = self._invoke(tmp_path, "--repo", "octo/app", "--pr", "12", GITHUB_TOKEN=None)

        assert result.exit_code == 2
        assert "Missing required authentication tokens" in result.output

    def test_gh_cli_token_used_when_env_unset(self, mocker, tmp_path):
        mocker.patch("hunklens_cli.auth._gh_cli_token", return_value="cli-token")
        pr = _make_pr()
        self._patch_github(mocker, pr)

        result = self._invoke(tmp_path, "--repo", "octo/app", "--pr", "12", "--shadow", GITHUB_TOKEN=None)

        assert result.exit_code == 0, result.output
        assert review_module.get_pull_diff.call_args.args[0] == "cli-token"
