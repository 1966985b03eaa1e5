from __future__ import annotations

from dataclasses import dataclass
import json
import subprocess
from typing import Any, Callable, Literal

ErrorCategory = Literal["retryable", "fatal"]
CommandRunner = Callable[[list[str]], subprocess.CompletedProcess[str]]

# Fragments of az CLI / ARM error output that indicate a transient failure.
_RETRYABLE_PATTERNS = (
    "timed out",
    "timeout",
    "temporarily unavailable",
    "connection reset",
    "connection aborted",
    "too many requests",
    "toomanyrequests",
    "throttl",
    "serviceunavailable",
    "internalservererror",
    "conflictingserveroperation",
    "another operation is in progress",
)


@dataclass(frozen=True)
class CommandResult:
    command: list[str]
    returncode: int
    stdout: str
    stderr: str


class AdapterCommandError(RuntimeError):
    def __init__(
        self,
        *,
        message: str,
        result: CommandResult,
        category: ErrorCategory,
    ) -> None:
        self.result = result
        self.category = category
        super().__init__(self._build_message(message))

    @property
    def retryable(self) -> bool:
        return self.category == "retryable"

    def _build_message(self, message: str) -> str:
        detail = (self.result.stderr or self.result.stdout).strip()
        if len(detail) > 400:
            detail = f"{detail[:397]}..."
        # the subcommand is enough to identify the call; arguments can carry file paths
        cmd = " ".join(self.result.command[:4])
        return (
            f"{message} (category={self.category}, returncode={self.result.returncode}, "
            f"command={cmd!r}, detail={detail!r})"
        )


def default_runner(command: list[str]) -> subprocess.CompletedProcess[str]:
    return subprocess.run(command, capture_output=True, text=True, check=False)


def classify_error(*, returncode: int, stderr: str, stdout: str) -> ErrorCategory:
    if returncode < 0:
        return "retryable"
    text = f"{stderr}\n{stdout}".lower()
    if any(pattern in text for pattern in _RETRYABLE_PATTERNS):
        return "retryable"
    return "fatal"


def run_command(
    command: list[str],
    *,
    runner: CommandRunner | None = None,
    error_message: str,
) -> CommandResult:
    active_runner = runner or default_runner
    completed = active_runner(command)
    result = CommandResult(
        command=command,
        returncode=completed.returncode,
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
    )
    if result.returncode != 0:
        raise AdapterCommandError(
            message=error_message,
            result=result,
            category=classify_error(
                returncode=result.returncode,
                stderr=result.stderr,
                stdout=result.stdout,
            ),
        )
    return result


def run_json_command(
    command: list[str],
    *,
    runner: CommandRunner | None = None,
    error_message: str,
) -> Any:
    """Run a command that prints JSON and return the decoded payload (None for empty output)."""
    result = run_command(command, runner=runner, error_message=error_message)
    if not result.stdout.strip():
        return None
    try:
        return json.loads(result.stdout)
    except json.JSONDecodeError as exc:
        raise ValueError(f"{error_message}: command printed invalid JSON") from exc
