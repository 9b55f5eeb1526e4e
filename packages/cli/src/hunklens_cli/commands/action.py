"""action command — review the pull request of a GitHub Actions event."""

from __future__ import annotations

import logging

import click
from rich.console import Console

from hunklens_cli.actions import get_input, set_failed, set_output
from hunklens_core.config import load_config, validate_config
from hunklens_core.gh.pull_request import (
    get_changed_files,
    get_event_diff,
    get_pr_context,
    get_pull,
    get_repo,
    load_event,
    pull_request_from_event,
)
from hunklens_core.pricing import TokenUsage
from hunklens_core.providers import get_reviewer
from hunklens_core.publisher import GitHubCommentSink
from hunklens_core.reviewer import ReviewSummary, print_summary, run_review

console = Console()
logger = logging.getLogger(__name__)


def _action_inputs() -> dict:
    """Map the inputs declared in action.yml onto config keys."""
    return {
        "github_token": get_input("GITHUB_TOKEN"),
        "openai_api_key": get_input("OPENAI_API_KEY"),
        "anthropic_api_key": get_input("ANTHROPIC_API_KEY"),
        "model": get_input("OPENAI_API_MODEL"),
        "exclude": get_input("EXCLUDE_PATTERNS"),
        "custom_prompt": get_input("CUSTOM_PROMPT"),
        "fallback_to_general_comment": get_input("FALLBACK_TO_GENERAL_COMMENT"),
    }


def _run_action(config_path: str, event_path: str | None) -> ReviewSummary:
    config = load_config(config_path, overrides=_action_inputs())
    validate_config(config)
    token = config["github_token"]

    event = load_event(event_path)
    owner, name, number = pull_request_from_event(event)
    pr_obj = get_pull(get_repo(f"{owner}/{name}", token=token), number)
    pr = get_pr_context(pr_obj, owner, name)
    diff_text = get_event_diff(token, event, pr)

    changed_files = get_changed_files(pr_obj)
    console.print(f"Files in Pull Request: {', '.join(sorted(changed_files))}")

    reviewer = get_reviewer(config, TokenUsage())
    return run_review(pr, diff_text, changed_files, config, reviewer, sink=GitHubCommentSink(pr_obj))


@click.command("action")
@click.option(
    "--event-path",
    default=None,
    envvar="GITHUB_EVENT_PATH",
    help="Path to the event payload. Defaults to $GITHUB_EVENT_PATH.",
)
@click.pass_context
def action_cmd(ctx, event_path: str | None):
    """Review the pull request that triggered the current workflow run.

    Handles `opened` (full diff) and `synchronize` (diff of the pushed commits)
    events. Inputs are read from the INPUT_* variables GitHub sets for the
    action; the commentsCount and totalCost outputs are written on completion.
    """
    config_path = ctx.obj.get("config_path", ".hunklens.yml") if ctx.obj else ".hunklens.yml"
    try:
        summary = _run_action(config_path, event_path)
    except Exception as e:
        logger.debug("Action failed", exc_info=True)
        set_failed(f"Action failed: {e}")
        ctx.exit(1)

    print_summary(summary)
    set_output("commentsCount", summary.comments_count)
    set_output("totalCost", summary.formatted_cost)

    if summary.failed:
        for failure in summary.publish.failures:
            set_failed(failure)
        ctx.exit(1)
