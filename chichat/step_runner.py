from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Generic, List, Optional, TypeVar

logger = logging.getLogger("chichat.steps")

ContextT = TypeVar("ContextT")


@dataclass
class PipelineStep(Generic[ContextT]):
    """Named step with an optional skip predicate."""
    name: str
    fn: Callable[[ContextT], None]
    skip_if: Optional[Callable[[ContextT], bool]] = None


class StepRunner(Generic[ContextT]):
    """Run steps in declaration order against one mutable context."""

    def __init__(self, steps: List[PipelineStep[ContextT]]) -> None:
        self._steps = list(steps)

    def run(self, context: ContextT, request_id: str = "-") -> List[str]:
        """Purpose: Execute steps in order, honoring skip predicates.
        Inputs/Outputs: Input is a mutable context and a request id for logs;
            returns the names of the steps that actually ran.
        Side Effects / State: Step functions mutate the context.
        Dependencies: PipelineStep.fn and PipelineStep.skip_if.
        Failure Modes: Exceptions raised by a step propagate to the caller.
        If Removed: The context assembler cannot sequence its steps.
        Testing Notes: Verify order, skipping, and that ran-names are reported.
        """
        executed: List[str] = []
        for step in self._steps:
            if step.skip_if and step.skip_if(context):
                logger.debug("request=%s step=%s status=skipped", request_id, step.name)
                continue
            step.fn(context)
            executed.append(step.name)
            logger.debug("request=%s step=%s status=success", request_id, step.name)
        return executed
