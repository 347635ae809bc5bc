"""GitHub Actions runner surface: inputs, log groups and annotations.

Speaks the workflow-command protocol on stdout, e.g.

    ::group::Parse Step
    ::warning file=content/rules.md::A message was split due to max length constraints
    ::endgroup::

Outside of Actions the commands are simply printed, which keeps local runs
readable. Structured application logs go through structlog on stderr.
"""

from __future__ import annotations

import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager

# Process exit status, set by set_failed()
_exit_code = 0


def get_input(name: str, required: bool = False) -> str:
    """Read an action input (``with:`` key) from its INPUT_* variable."""
    key = f"INPUT_{name.replace(' ', '_').upper()}"
    value = os.environ.get(key, "").strip()
    if required and not value:
        raise ValueError(f"Input required and not supplied: {name}")
    return value


def _escape_data(value: str) -> str:
    return value.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")


def _escape_property(value: str) -> str:
    return _escape_data(value).replace(":", "%3A").replace(",", "%2C")


def issue_command(command: str, message: str = "", **properties: str | None) -> None:
    """Write a single ``::command key=value::message`` line."""
    props = ",".join(
        f"{key}={_escape_property(str(value))}"
        for key, value in properties.items()
        if value is not None
    )
    head = f"::{command} {props}" if props else f"::{command}"
    sys.stdout.write(f"{head}::{_escape_data(message)}\n")
    sys.stdout.flush()


def info(message: str) -> None:
    sys.stdout.write(f"{message}\n")
    sys.stdout.flush()


def warning(message: str, file: str | None = None) -> None:
    issue_command("warning", message, file=file)


def error(message: str, file: str | None = None) -> None:
    issue_command("error", message, file=file)


@contextmanager
def group(name: str) -> Iterator[None]:
    """Fold everything logged inside the block under a collapsible group."""
    issue_command("group", name)
    try:
        yield
    finally:
        issue_command("endgroup")


def set_failed(message: str) -> None:
    """Report an error and mark the run as failed."""
    global _exit_code
    _exit_code = 1
    error(message)


def exit_code() -> int:
    return _exit_code
