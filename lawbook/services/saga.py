"""Forward steps paired with compensating steps, unwound on first failure."""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

logger = logging.getLogger(__name__)


@dataclass
class SagaStep:
    name: str
    action: Callable[[], Any]
    compensation: Callable[[Any], None] | None = None


@dataclass
class Saga:
    name: str
    steps: list[SagaStep] = field(default_factory=list)

    def step(self, name: str, action: Callable[[], Any], compensation: Callable[[Any], None] | None = None) -> 'Saga':
        self.steps.append(SagaStep(name, action, compensation))
        return self

    def run(self) -> list[Any]:
        """Run every step in order and return their results.

        When a step raises, the compensations of the steps that already
        completed run in reverse order and the original exception is
        re-raised. A failing compensation is logged and does not stop the
        rest of the unwind.
        """
        completed: list[tuple[SagaStep, Any]] = []
        for saga_step in self.steps:
            try:
                result = saga_step.action()
            except Exception:
                logger.warning('%s: step %r failed, unwinding %d step(s)', self.name, saga_step.name, len(completed))
                self._unwind(completed)
                raise
            completed.append((saga_step, result))
        return [result for _, result in completed]

    def _unwind(self, completed: list[tuple[SagaStep, Any]]) -> None:
        for saga_step, result in reversed(completed):
            if saga_step.compensation is None:
                continue
            try:
                saga_step.compensation(result)
            except Exception:
                logger.exception('%s: compensation for %r failed', self.name, saga_step.name)
