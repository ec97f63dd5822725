"""Step progress for the provisioning sequence.

Each message passed to ``step()`` opens a numbered step and closes the one
before it, so every Azure resource gets its own line and its own elapsed
time. ``VMProvisioner.provision`` drives it through its progress callback.

Example:
    >>> progress = ProgressDisplay()
    >>> progress.start_operation("Provisioning VM demo", total_steps=7)
    >>> progress.step("Resource group: demo-rg")
    >>> progress.complete(success=True)
"""

import sys
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TextIO


class ProgressStage(Enum):
    """Progress stage indicators."""

    STARTED = "started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class ProvisioningStep:
    """One step of an operation and how long it took."""

    number: int
    message: str
    started_at: float
    finished_at: float | None = None
    stage: ProgressStage = ProgressStage.IN_PROGRESS

    @property
    def elapsed(self) -> float | None:
        if self.finished_at is None:
            return None
        return self.finished_at - self.started_at


class ProgressDisplay:
    """Console progress for a multi-step operation."""

    SYMBOLS = {
        ProgressStage.STARTED: "►",
        ProgressStage.IN_PROGRESS: "...",
        ProgressStage.COMPLETED: "✓",
        ProgressStage.FAILED: "✗",
    }

    def __init__(
        self,
        output_file: TextIO | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """Initialize progress display.

        Args:
            output_file: Output stream (default: sys.stdout)
            clock: Time source, replaceable in tests
        """
        self.output_file = output_file or sys.stdout
        self.clock = clock
        self.current_operation: str | None = None
        self.total_steps: int | None = None
        self.start_time: float | None = None
        self.steps: list[ProvisioningStep] = []

    def start_operation(
        self,
        name: str,
        total_steps: int | None = None,
        estimated_seconds: int | None = None,
    ) -> None:
        """Begin a new operation, discarding steps from any previous one."""
        self.current_operation = name
        self.total_steps = total_steps
        self.start_time = self.clock()
        self.steps = []

        message = f"Starting: {name}"
        if estimated_seconds:
            message += f" (estimated: {estimated_seconds / 60:.1f} minutes)"
        self._print(ProgressStage.STARTED, message)

    def step(self, message: str) -> None:
        """Finish the running step and start the next one.

        Matches the ``progress_callback`` signature of ``VMProvisioner.provision``.
        """
        self._finish_current(ProgressStage.COMPLETED)

        step = ProvisioningStep(
            number=len(self.steps) + 1,
            message=message,
            started_at=self.clock(),
        )
        self.steps.append(step)
        self._print(ProgressStage.IN_PROGRESS, f"{self._counter(step)} {message}")

    def complete(self, success: bool = True, message: str | None = None) -> None:
        """Close the last step and print the overall result with total time.

        On failure the running step is the one marked failed.
        """
        final_stage = ProgressStage.COMPLETED if success else ProgressStage.FAILED
        self._finish_current(final_stage)

        outcome = "completed" if success else "failed"
        final_message = message or f"{self.current_operation} {outcome}"
        if self.start_time is not None:
            final_message += f" ({self._format_duration(self.clock() - self.start_time)})"
        self._print(final_stage, final_message)

        self.current_operation = None
        self.start_time = None

    @property
    def current_step(self) -> ProvisioningStep | None:
        if self.steps and self.steps[-1].finished_at is None:
            return self.steps[-1]
        return None

    def _finish_current(self, stage: ProgressStage) -> None:
        step = self.current_step
        if step is None:
            return
        step.finished_at = self.clock()
        step.stage = stage
        self._print(
            stage,
            f"{self._counter(step)} {step.message} ({self._format_duration(step.elapsed)})",
        )

    def _counter(self, step: ProvisioningStep) -> str:
        if self.total_steps:
            return f"[{step.number}/{self.total_steps}]"
        return f"[{step.number}]"

    def _format_duration(self, seconds: float) -> str:
        """Format duration as "12.3s", "2m 30s" or "1h 2m"."""
        if seconds < 60:
            return f"{seconds:.1f}s"
        if seconds < 3600:
            return f"{int(seconds // 60)}m {int(seconds % 60)}s"
        return f"{int(seconds // 3600)}h {int((seconds % 3600) // 60)}m"

    def _print(self, stage: ProgressStage, message: str) -> None:
        print(f"{self.SYMBOLS[stage]} {message}", file=self.output_file, flush=True)


__all__ = ["ProgressDisplay", "ProgressStage", "ProvisioningStep"]
