"""Async runner for the Claude CLI."""

from __future__ import annotations

import asyncio
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Sequence

from .utils import sanitize_environment

logger = logging.getLogger(__name__)

# stream-json lines carry whole tool results; the asyncio default of 64 KiB is too small
STREAM_LINE_LIMIT = 16 * 1024 * 1024

LineCallback = Callable[[str], None]


class ClaudeRunnerError(RuntimeError):
    """Base class for Claude runner errors."""


class ClaudeNotFoundError(ClaudeRunnerError):
    """Raised when the Claude CLI executable cannot be located."""


@dataclass(slots=True)
class ClaudeExecutionResult:
    """Holds the outcome of a Claude CLI invocation."""

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class ClaudeRunner:
    """Execute Claude CLI commands asynchronously."""

    def __init__(self, executable: Path | None = None) -> None:
        self._executable_path = self._resolve_executable(executable)

    @staticmethod
    def _resolve_executable(explicit: Path | None) -> Path:
        if explicit is not None:
            candidate = Path(explicit)
            if candidate.exists() and candidate.is_file():
                return candidate
            raise ClaudeNotFoundError(f"Claude executable not found at {candidate}")

        binary = shutil.which("claude")
        if binary is None:
            raise ClaudeNotFoundError("Failed to start claude. Is it installed and in PATH?")
        return Path(binary)

    @property
    def executable(self) -> Path:
        return self._executable_path

    async def version(self) -> ClaudeExecutionResult:
        return await self._invoke("--version")

    async def run_task(
        self,
        prompt: str,
        *,
        cwd: Path | None = None,
        flags: Sequence[str] | None = None,
        on_line: LineCallback | None = None,
    ) -> ClaudeExecutionResult:
        """Run one single-shot task and capture its stream-json output."""

        args = [*(flags or []), "-p", prompt, "--output-format", "stream-json", "--verbose"]
        return await self._invoke(*args, cwd=cwd, on_line=on_line)

    async def _invoke(
        self,
        *args: str,
        cwd: Path | None = None,
        on_line: LineCallback | None = None,
    ) -> ClaudeExecutionResult:
        cmd = [str(self._executable_path), *args]
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd is not None else None,
            env=sanitize_environment(),
            limit=STREAM_LINE_LIMIT,
        )
        try:
            stdout, stderr_bytes = await asyncio.gather(
                _drain_lines(process.stdout, on_line),
                process.stderr.read(),
            )
            returncode = await process.wait()
        finally:
            if process.returncode is None:
                logger.warning("Killing claude after an interrupted read", extra={"pid": process.pid})
                process.kill()
                await process.wait()
        stderr = stderr_bytes.decode("utf-8", errors="replace")
        return ClaudeExecutionResult(args=tuple(cmd), returncode=returncode, stdout=stdout, stderr=stderr)


async def _drain_lines(stream: asyncio.StreamReader, on_line: LineCallback | None) -> str:
    captured: list[str] = []
    while True:
        raw = await _read_line(stream)
        if not raw:
            break
        line = raw.decode("utf-8", errors="replace")
        captured.append(line)
        if on_line is not None:
            on_line(line.rstrip("\n"))
    return "".join(captured)


async def _read_line(stream: asyncio.StreamReader) -> bytes:
    """Read one newline-terminated line, however long, or what is left at EOF."""

    chunks: list[bytes] = []
    while True:
        try:
            chunks.append(await stream.readuntil(b"\n"))
            break
        except asyncio.LimitOverrunError as exc:
            chunks.append(await stream.readexactly(exc.consumed))
        except asyncio.IncompleteReadError as exc:
            chunks.append(exc.partial)
            break
    return b"".join(chunks)


class FakeClaudeRunner(ClaudeRunner):
    """Test double that simulates Claude CLI responses."""

    def __init__(self, responses: Iterable[ClaudeExecutionResult] | None = None) -> None:  # type: ignore[override]
        self._responses = list(responses or [])
        self._invocations: list[tuple[str, ...]] = []
        self._executable_path = Path("/tmp/fake-claude")

    async def _invoke(  # type: ignore[override]
        self,
        *args: str,
        cwd: Path | None = None,
        on_line: LineCallback | None = None,
    ) -> ClaudeExecutionResult:
        self._invocations.append(tuple(args))
        if self._responses:
            result = self._responses.pop(0)
        else:
            result = ClaudeExecutionResult(args=tuple(args), returncode=0, stdout="", stderr="")
        if on_line is not None:
            for line in result.stdout.splitlines():
                on_line(line)
        return result

    @property
    def invocations(self) -> list[tuple[str, ...]]:
        return self._invocations


__all__ = [
    "ClaudeExecutionResult",
    "ClaudeNotFoundError",
    "ClaudeRunner",
    "ClaudeRunnerError",
    "FakeClaudeRunner",
]
