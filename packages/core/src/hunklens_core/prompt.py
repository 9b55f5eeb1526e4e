"""Per-chunk review prompt construction."""

from __future__ import annotations

from hunklens_core.models import Chunk, ParsedFile, PullRequestContext

REVIEW_INSTRUCTIONS = """\
Act as an experienced full stack engineer focused solely on identifying actionable errors, bugs, \
design issues, and writing quality in code reviews. Your task is to review pull requests.
Instructions:
- Response Format: Provide the response in JSON using the following format: \
{"reviews": [{"lineNumber": <line_number>, "reviewComment": "<review comment>"}]}
- Markdown: Write review comments in GitHub Markdown format.
- No Explanations: Do not output any reasoning or internal thought process.
- Never suggest adding comments or documentation to the code.
- Do not include positive comments or compliments.
- Actionable Feedback Only: Generate review comments only for specific errors, bugs, or design issues. \
If no issues are detected, "reviews" should be an empty array.
- Avoid generic reminders (e.g., verifying branch names or variable definitions) unless they break \
explicit project rules. Ignore syntax and compilation errors and ignore any issues that can be caught \
during build time.
- Context Use: Use the provided description only for overall context and review only code and \
newly added/edited comments.
- Usage Checks: Do not suggest checking if a variable or an import is used.
- Writing Quality: Fix typos, grammar, and spelling. Ensure one idea per sentence. Simplify complex \
sentences. One comment can address several issues."""


def format_chunk(chunk: Chunk) -> str:
    """Render a hunk with every change line prefixed by its effective line number."""
    lines = [chunk.content]
    for change in chunk.changes:
        line_no = change.effective_line
        lines.append(f"{'' if line_no is None else line_no} {change.content}")
    return "\n".join(lines)


def build_prompt(
    file: ParsedFile,
    chunk: Chunk,
    pr: PullRequestContext,
    custom_instructions: str = "",
) -> str:
    return f"""{REVIEW_INSTRUCTIONS}

{custom_instructions or ""}

Review the following code diff in the file "{file.path or ""}" and take the pull request title \
and description into account when writing the response.

Pull request title: {pr.title or ""}
Pull request description:

---
{pr.description or ""}
---

Git diff to review:

```diff
{format_chunk(chunk)}
```
"""
