"""End-to-end task flow: compile, run, record, extract, merge."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable

from .claude import ClaudeRunner
from .context import CompiledContext, ContextCompiler
from .extraction import ExtractionError, NoteExtractor
from .notes import KnowledgeCategory, apply_update
from .session import Session, TaskRecord
from .transcript import Transcript, parse_transcript

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TaskOutcome:
    """Everything a caller needs to report on a finished task."""

    task_number: int
    record: TaskRecord
    transcript: Transcript
    returncode: int
    stderr: str
    log_path: Path
    context: CompiledContext
    updated_notes: list[KnowledgeCategory] = field(default_factory=list)
    extraction_error: str | None = None

    @property
    def success(self) -> bool:
        return self.transcript.succeeded()

    def to_dict(self) -> dict:
        return {
            "task_number": self.task_number,
            "success": self.success,
            "summary": self.record.summary,
            "returncode": self.returncode,
            "duration_ms": self.transcript.duration_ms(),
            "cost_usd": self.transcript.total_cost(),
            "tools_used": self.transcript.tools_used(),
            "log_path": str(self.log_path),
            "context_tokens": self.context.estimated_tokens,
            "updated_notes": [category.value for category in self.updated_notes],
            "extraction_error": self.extraction_error,
        }


class TaskPipeline:
    """Runs one task for a session and folds what was learned back into the notes."""

    def __init__(
        self,
        runner: ClaudeRunner,
        extractor: NoteExtractor,
        compiler: ContextCompiler,
        *,
        flags: list[str] | None = None,
    ) -> None:
        self._runner = runner
        self._extractor = extractor
        self._compiler = compiler
        self._flags = list(flags or [])

    @property
    def compiler(self) -> ContextCompiler:
        return self._compiler

    async def run_task(
        self,
        session: Session,
        prompt: str,
        on_line: Callable[[str], None] | None = None,
    ) -> TaskOutcome:
        project = session.project
        context = self._compiler.compile(session)
        task_number = project.next_task_number()

        logger.info(
            "Running task",
            extra={"project": project.name, "task_number": task_number, "mode": session.mode.value},
        )
        result = await self._runner.run_task(
            prompt,
            cwd=session.working_dir,
            flags=self._flags,
            on_line=on_line,
        )
        if not result.ok:
            logger.warning(
                "Claude exited with a non-zero status",
                extra={"returncode": result.returncode, "stderr": result.stderr[:400]},
            )

        transcript = parse_transcript(result.stdout)
        record = session.record_task(task_number, prompt, transcript, result.stdout)
        project.record_task()
        log_path = project.save_task_log(task_number, prompt, result.stdout, transcript)

        outcome = TaskOutcome(
            task_number=task_number,
            record=record,
            transcript=transcript,
            returncode=result.returncode,
            stderr=result.stderr,
            log_path=log_path,
            context=context,
        )

        try:
            update = await self._extractor.extract(project.notes.snapshot(), transcript, prompt)
        except ExtractionError as exc:
            logger.warning(
                "Note extraction failed; notes left unchanged",
                extra={"project": project.name, "task_number": task_number, "error": str(exc)},
            )
            outcome.extraction_error = str(exc)
        else:
            outcome.updated_notes = apply_update(project.notes, update)

        logger.info(
            "Task complete",
            extra={
                "project": project.name,
                "task_number": task_number,
                "success": outcome.success,
                "updated_notes": [category.value for category in outcome.updated_notes],
            },
        )
        return outcome


__all__ = ["TaskOutcome", "TaskPipeline"]
