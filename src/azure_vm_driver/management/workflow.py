"""Step tracking for multi-operation workflows.

Tracks per-step status (pending, running, completed, failed or
compensated) for one workflow invocation. State lives in memory only and
is attached to the result or error of the workflow for reporting.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Optional

logger = logging.getLogger(__name__)

# VM creation steps, in order
SERVICE_CREATED = 'service_created'
CERT_UPLOADED = 'cert_uploaded'
DEPLOYMENT_SUBMITTED = 'deployment_submitted'


@dataclass
class StepState:
    """Per-step execution state.

    Attributes:
        name: Step name
        status: pending, running, completed, failed or compensated
        request_id: Provider request id of the step's operation
        started_at: Timestamp when the step started
        completed_at: Timestamp when the step ended
        error: Error message if failed
    """
    name: str
    status: str = 'pending'
    request_id: Optional[str] = None
    started_at: Optional[float] = None
    completed_at: Optional[float] = None
    error: Optional[str] = None

    def start(self) -> None:
        self.status = 'running'
        self.started_at = time.time()

    def submitted(self, request_id: str) -> None:
        self.request_id = request_id

    def complete(self) -> None:
        self.status = 'completed'
        self.completed_at = time.time()

    def fail(self, error: str) -> None:
        self.status = 'failed'
        self.completed_at = time.time()
        self.error = error

    def mark_compensated(self) -> None:
        self.status = 'compensated'
        self.completed_at = time.time()

    @property
    def duration(self) -> Optional[float]:
        if self.started_at and self.completed_at:
            return self.completed_at - self.started_at
        return None

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            'name': self.name,
            'status': self.status,
        }
        if self.request_id is not None:
            d['request_id'] = self.request_id
        if self.duration is not None:
            d['duration'] = round(self.duration, 3)
        if self.error is not None:
            d['error'] = self.error
        return d


class WorkflowState:
    """Workflow-level state: ordered steps plus a current stage.

    The stage only moves forward: init, then each completed step name,
    then done.
    """

    def __init__(self, workflow: str, target: str, steps: list[str]):
        """Initialize workflow state.

        Args:
            workflow: Workflow identifier (e.g. create_vm)
            target: Resource the workflow acts on (e.g. hosted service name)
            steps: Step names in execution order
        """
        self.workflow = workflow
        self.target = target
        self.stage = 'init'
        self._steps: dict[str, StepState] = {name: StepState(name=name) for name in steps}
        self.started_at: Optional[float] = None
        self.completed_at: Optional[float] = None

    def step(self, name: str) -> StepState:
        """Get step state by name.

        Raises:
            KeyError: If step not registered
        """
        return self._steps[name]

    @property
    def steps(self) -> dict[str, StepState]:
        return dict(self._steps)

    def start(self) -> None:
        self.started_at = time.time()
        logger.info(f"[{self.workflow}] Starting for {self.target}")

    def begin(self, name: str) -> StepState:
        state = self._steps[name]
        state.start()
        logger.info(f"[{self.workflow}] {self.target}: {name}...")
        return state

    def advance(self, name: str) -> None:
        """Mark step completed and move the stage to it."""
        self._steps[name].complete()
        self.stage = name

    def finish(self) -> None:
        self.stage = 'done'
        self.completed_at = time.time()
        logger.info(f"[{self.workflow}] {self.target}: done")

    @property
    def succeeded(self) -> bool:
        return self.stage == 'done'

    def to_dict(self) -> dict:
        return {
            'workflow': self.workflow,
            'target': self.target,
            'stage': self.stage,
            'steps': [s.to_dict() for s in self._steps.values()],
        }
