"""Core review orchestration: diff → per-chunk model calls → comments → delivery."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

from rich.console import Console
from rich.markup import escape

from hunklens_core.diff import filter_files, parse_diff
from hunklens_core.models import Chunk, CommentRecord, InvalidFinding, ParsedFile, PullRequestContext, ReviewFinding
from hunklens_core.pricing import TokenUsage, format_cost, total_cost
from hunklens_core.prompt import build_prompt
from hunklens_core.providers.base import BaseReviewer
from hunklens_core.publisher import CommentPublisher, CommentSink, FallbackPolicy, PublishResult

console = Console()
logger = logging.getLogger(__name__)


@dataclass
class ReviewSummary:
    """Outcome of one review run, read by the CLI to set outputs and exit status."""

    model: str
    comments: list[CommentRecord] = field(default_factory=list)
    usage: TokenUsage = field(default_factory=TokenUsage)
    total_cost: float = 0.0
    publish: PublishResult | None = None  # None when nothing was published

    @property
    def comments_count(self) -> int:
        return len(self.comments)

    @property
    def formatted_cost(self) -> str:
        return format_cost(self.total_cost)

    @property
    def failed(self) -> bool:
        return self.publish is not None and self.publish.failed


def create_comments(file: ParsedFile, findings: list[ReviewFinding]) -> list[CommentRecord]:
    """Anchor each finding to the file it came from.

    A finding whose line number is not a positive integer is dropped on its own.
    """
    if file.path is None:
        return []
    comments = []
    for finding in findings:
        try:
            line = finding.line()
        except InvalidFinding as e:
            logger.warning("Skipping finding in %s: %s", file.path, e)
            continue
        comments.append(CommentRecord(body=finding.review_comment, path=file.path, line=line))
    return comments


async def _review_chunk(
    reviewer: BaseReviewer,
    file: ParsedFile,
    chunk: Chunk,
    pr: PullRequestContext,
    custom_prompt: str,
    semaphore: asyncio.Semaphore,
) -> list[CommentRecord]:
    try:
        prompt = build_prompt(file, chunk, pr, custom_prompt)
        async with semaphore:
            findings = await reviewer.review(prompt)
        if not findings:
            return []
        return create_comments(file, findings)
    except Exception:
        logger.exception("Error processing chunk %s in file %s", chunk.header, file.path)
        return []


async def analyze(
    files: list[ParsedFile],
    pr: PullRequestContext,
    changed_files: frozenset[str],
    reviewer: BaseReviewer,
    custom_prompt: str = "",
    max_concurrency: int = 8,
) -> list[CommentRecord]:
    """Review every chunk of every eligible file concurrently.

    Files that were deleted, or that the pull request does not list as changed,
    are skipped. Comments come back grouped in file/chunk order regardless of
    which model call finished first.
    """
    semaphore = asyncio.Semaphore(max_concurrency)
    jobs = []
    for file in files:
        if file.path is None or file.path not in changed_files:
            console.print(f"  Ignored file: {escape(str(file.path))}")
            continue
        console.print(f"  Reviewing file: {escape(file.path)} ({len(file.chunks)} chunk(s))")
        jobs.extend(_review_chunk(reviewer, file, chunk, pr, custom_prompt, semaphore) for chunk in file.chunks)

    results = await asyncio.gather(*jobs)
    return [comment for chunk_comments in results for comment in chunk_comments]


def print_shadow_comments(comments: list[CommentRecord]) -> None:
    """Print review comments to the terminal without posting to GitHub."""
    if not comments:
        console.print("[yellow]Shadow mode: no comments generated.[/yellow]")
        return
    console.print(f"\n[bold]Shadow review: {len(comments)} comment(s) (not posted)[/bold]\n")
    for c in comments:
        console.print(f"[bold cyan]{escape(c.path)}[/bold cyan]  line [bold]{c.line}[/bold]")
        console.print(f"  {escape(c.body)}")
        console.print()


def print_summary(summary: ReviewSummary) -> None:
    usage = summary.usage
    console.print("========= Summary ====================")
    console.print(f"Total comments: {summary.comments_count}")
    console.print(f"Model: {summary.model}")
    if summary.total_cost > 0:
        console.print(f"Uncached Input Tokens: {usage.uncached_tokens}")
        console.print(f"Cached Input Tokens: {usage.cached_tokens}")
        console.print(f"Output Tokens: {usage.completion_tokens}")
    console.print(f"Total Estimated Cost: ${summary.formatted_cost}")
    if summary.publish is not None and summary.publish.fallback:
        console.print(f"[yellow]{summary.publish.fallback} comment(s) posted as general comments.[/yellow]")
    if summary.publish is not None and summary.publish.dropped:
        console.print(f"[yellow]{len(summary.publish.dropped)} comment(s) could not be posted.[/yellow]")


def run_review(
    pr: PullRequestContext,
    diff_text: str | None,
    changed_files: frozenset[str],
    config: dict,
    reviewer: BaseReviewer,
    sink: CommentSink | None = None,
    shadow: bool = False,
) -> ReviewSummary:
    """Run the diff analysis and comment pipeline for one diff snapshot.

    The reviewer's usage accumulator is read once, after every model call
    has finished, to price the run.
    """
    model = config["model"]
    usage = reviewer.usage

    if not diff_text:
        console.print("[yellow]No diff found.[/yellow]")
        return ReviewSummary(model=model, usage=usage)

    parsed = parse_diff(diff_text)
    files = filter_files(parsed, config.get("exclude", []))
    for file in parsed:
        if file.path is None:
            console.print("  Ignored deleted file")
        elif file not in files:
            console.print(f"  Excluded file: {escape(file.path)}")

    console.print(f"Pull Request Number: {pr.pull_number}")
    console.print("========= Reviewing ====================")
    comments = asyncio.run(
        analyze(
            files,
            pr,
            changed_files,
            reviewer,
            custom_prompt=config.get("custom_prompt", ""),
            max_concurrency=config.get("max_concurrency", 8),
        )
    )

    publish: PublishResult | None = None
    if shadow:
        print_shadow_comments(comments)
    elif comments:
        if sink is None:
            raise ValueError("A comment sink is required unless running in shadow mode.")
        policy = FallbackPolicy(enabled=config.get("fallback_to_general_comment", True))
        publish = CommentPublisher(sink, policy).publish(comments)

    return ReviewSummary(
        model=model,
        comments=comments,
        usage=usage,
        total_cost=total_cost(model, usage),
        publish=publish,
    )
