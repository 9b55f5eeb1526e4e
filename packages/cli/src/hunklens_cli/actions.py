"""Minimal GitHub Actions runtime helpers: inputs, outputs, failure annotations."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from uuid import uuid4


def get_input(name: str) -> str | None:
    """Return an action input (``INPUT_<NAME>``), or None when unset or empty."""
    value = os.environ.get(f"INPUT_{name.replace(' ', '_').upper()}", "").strip()
    return value or None


def set_output(name: str, value) -> None:
    """Append an output to ``$GITHUB_OUTPUT``; print it when not running in Actions."""
    text = str(value)
    output_path = os.environ.get("GITHUB_OUTPUT")
    if not output_path:
        print(f"{name}={text}")
        return

    delimiter = f"ghadelimiter_{uuid4().hex}"
    while delimiter in text:
        delimiter = f"ghadelimiter_{uuid4().hex}"
    with Path(output_path).open("a", encoding="utf-8") as fh:
        fh.write(f"{name}<<{delimiter}\n{text}\n{delimiter}\n")


def set_failed(message: str) -> None:
    """Emit an error annotation. The caller is responsible for the exit status."""
    print(f"::error::{message}", file=sys.stderr)
