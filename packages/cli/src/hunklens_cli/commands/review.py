"""review command — run AI review on a pull request from the terminal."""

from __future__ import annotations

import click
from rich.console import Console

from hunklens_cli.auth import resolve_github_token
from hunklens_core.config import load_config, validate_config
from hunklens_core.gh.pull_request import get_changed_files, get_pr_context, get_pull, get_pull_diff, get_repo
from hunklens_core.pricing import TokenUsage
from hunklens_core.providers import get_reviewer
from hunklens_core.publisher import GitHubCommentSink
from hunklens_core.reviewer import print_summary, run_review

console = Console()


@click.command("review")
@click.option("--repo", required=True, help="GitHub repository in owner/name format.")
@click.option("--pr", "pr_number", type=int, required=True, help="Pull request number.")
@click.option("--model", default=None, help="Model identifier. Overrides config file.")
@click.option("--exclude", default=None, help="Comma-separated glob patterns of files to skip.")
@click.option("--custom-prompt", default=None, help="Extra instructions appended to every prompt.")
@click.option(
    "--fallback/--no-fallback",
    "fallback",
    default=None,
    help="Post a general PR comment when an inline comment is rejected.",
)
@click.option(
    "--shadow",
    "-s",
    is_flag=True,
    help="Dry-run mode: print review comments without posting to GitHub.",
)
@click.pass_context
def review_cmd(
    ctx,
    repo: str,
    pr_number: int,
    model: str | None,
    exclude: str | None,
    custom_prompt: str | None,
    fallback: bool | None,
    shadow: bool,
):
    """Review the full diff of a pull request.

    Every hunk is sent to the model on its own and findings are posted as
    inline comments on the pull request.

    \b
    Required environment variables:
      GITHUB_TOKEN         GitHub personal access token (or use gh CLI)
      OPENAI_API_KEY       Required for OpenAI models (the default)
      ANTHROPIC_API_KEY    Required for claude-* models
    """
    if "/" not in repo:
        raise click.UsageError("--repo must be in owner/name format.")
    owner, name = repo.split("/", 1)

    config_path = ctx.obj.get("config_path", ".hunklens.yml") if ctx.obj else ".hunklens.yml"
    try:
        config = load_config(
            config_path,
            overrides={
                "model": model,
                "exclude": exclude,
                "custom_prompt": custom_prompt,
                "fallback_to_general_comment": fallback,
            },
        )
        config["github_token"] = resolve_github_token(config.get("github_token"))
        validate_config(config)
    except ValueError as e:
        raise click.UsageError(str(e))

    token = config["github_token"]
    pr_obj = get_pull(get_repo(repo, token=token), pr_number)
    pr = get_pr_context(pr_obj, owner, name)
    diff_text = get_pull_diff(token, owner, name, pr_number)

    summary = run_review(
        pr,
        diff_text,
        get_changed_files(pr_obj),
        config,
        get_reviewer(config, TokenUsage()),
        sink=None if shadow else GitHubCommentSink(pr_obj),
        shadow=shadow,
    )
    print_summary(summary)

    if summary.failed:
        for failure in summary.publish.failures:
            console.print(f"[red]{failure}[/red]")
        ctx.exit(1)
