"""Unified diff parsing and exclusion filtering."""

from __future__ import annotations

import codecs
import logging
import re
from functools import lru_cache

from unidiff import PatchSet

from hunklens_core.models import Change, Chunk, ParsedFile

logger = logging.getLogger(__name__)

_DEV_NULL = "/dev/null"


def _unquote(path: str) -> str:
    # git C-quotes paths with special or non-ASCII bytes: "b/d\303\244.py".
    if len(path) >= 2 and path.startswith('"') and path.endswith('"'):
        return codecs.escape_decode(path[1:-1].encode("utf-8"))[0].decode("utf-8")
    return path


def _target_path(target_file: str) -> str | None:
    if target_file == _DEV_NULL:
        return None
    path = _unquote(target_file)
    return path[2:] if path.startswith("b/") else path


def _range(start: int, length: int) -> str:
    # git omits the line count when it is 1.
    return str(start) if length == 1 else f"{start},{length}"


def _hunk_header(hunk) -> str:
    source = _range(hunk.source_start, hunk.source_length)
    target = _range(hunk.target_start, hunk.target_length)
    header = f"@@ -{source} +{target} @@"
    if hunk.section_header:
        header += f" {hunk.section_header}"
    return header


def parse_diff(diff_text: str) -> list[ParsedFile]:
    """Parse unified diff text into per-file records.

    Deleted files keep their hunks but get ``path=None`` so later stages can
    skip them. Lines carrying neither a source nor a target line number
    (``\\ No newline at end of file``) are not part of any change and are dropped.
    """
    if not diff_text or not diff_text.strip():
        return []

    files = []
    for patched_file in PatchSet(diff_text):
        path = None if patched_file.is_removed_file else _target_path(patched_file.target_file)
        chunks = []
        for hunk in patched_file:
            changes = tuple(
                Change(
                    content=line.line_type + line.value.rstrip("\r\n"),
                    source_line=line.source_line_no,
                    target_line=line.target_line_no,
                )
                for line in hunk
                if line.source_line_no is not None or line.target_line_no is not None
            )
            chunks.append(Chunk(header=_hunk_header(hunk), changes=changes))
        files.append(ParsedFile(path=path, chunks=tuple(chunks)))

    logger.debug("Parsed %d file(s) from diff", len(files))
    return files


def split_patterns(raw: str | list[str] | None) -> list[str]:
    """Split a comma-separated pattern string into clean glob patterns."""
    if not raw:
        return []
    items = raw if isinstance(raw, list) else raw.split(",")
    return [p.strip() for p in items if p and p.strip()]


@lru_cache(maxsize=256)
def _compile_glob(pattern: str) -> re.Pattern[str]:
    out = []
    i, n = 0, len(pattern)
    while i < n:
        c = pattern[i]
        if c == "*":
            if pattern.startswith("**", i):
                i += 2
                if pattern.startswith("/", i):
                    # "**/" also matches zero directories: "**/*.md" matches "a.md".
                    i += 1
                    out.append("(?:.*/)?")
                else:
                    out.append(".*")
                continue
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            end = pattern.find("]", i + 2)
            if end == -1:
                out.append(re.escape(c))
            else:
                body = pattern[i + 1 : end].replace("\\", "\\\\")
                if body.startswith("!"):
                    body = "^" + body[1:]
                elif body.startswith(("^", "[")):
                    body = "\\" + body
                out.append(f"[{body}]")
                i = end + 1
                continue
        else:
            out.append(re.escape(c))
        i += 1
    return re.compile("".join(out))


def matches_glob(path: str, pattern: str) -> bool:
    """Return True if path matches a glob pattern.

    ``*`` and ``?`` never cross a ``/``; ``**`` spans any number of segments.
    """
    try:
        return _compile_glob(pattern).fullmatch(path) is not None
    except re.error:
        logger.warning("Ignoring invalid exclude pattern: %r", pattern)
        return False


def is_excluded(path: str, patterns: list[str]) -> bool:
    return any(matches_glob(path, pattern) for pattern in patterns)


def filter_files(files: list[ParsedFile], patterns: list[str]) -> list[ParsedFile]:
    """Return the files worth reviewing.

    A file is dropped when it was deleted (``path is None``) or its post-change
    path matches any exclude pattern.
    """
    return [f for f in files if f.path is not None and not is_excluded(f.path, patterns)]
