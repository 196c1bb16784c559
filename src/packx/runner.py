from __future__ import annotations

import shlex
import subprocess  # noqa: S404
from typing import TYPE_CHECKING, Protocol

from packx.logging import logger

if TYPE_CHECKING:
    from collections.abc import Sequence


class ProcessRunner(Protocol):
    """Runs an external command and reports its exit status."""

    def run(self, argv: Sequence[str], input_text: str | None = None) -> int: ...


class SubprocessRunner:
    """`ProcessRunner` backed by `subprocess.run`, inheriting stdout/stderr."""

    def run(self, argv: Sequence[str], input_text: str | None = None) -> int:
        logger.info("Running external command", argv=list(argv))
        try:
            proc = subprocess.run(  # noqa: S603
                list(argv),
                input=input_text,
                text=True,
                check=False,
            )
        except OSError as e:
            logger.error("Could not start %s: %s", argv[0] if argv else "", e)  # noqa: TRY400
            return 127
        return proc.returncode


def build_command(binary: str, args: Sequence[str]) -> list[str]:
    """Split a configured binary (may carry its own arguments) and append `args`."""
    return [*shlex.split(binary), *args]


def quote_command(argv: Sequence[str]) -> str:
    """Shell-quoted rendering of `argv`, for logs and reproducibility metadata."""
    return shlex.join(argv)
