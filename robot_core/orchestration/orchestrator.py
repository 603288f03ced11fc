"""
Action Orchestrator

State machine running at most one Action at a time. A new request preempts
the running Action; cancellation leaves every mechanism halted.
"""

import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence

from .actions import Action
from ..commands import Command, FunctionalCommand
from ..telemetry import publish


class OrchestratorState(Enum):
    IDLE = "idle"
    RUNNING = "running"


class ActionOrchestrator:
    """Sequences action steps against mechanism completion predicates"""

    def __init__(self, mechanisms: Sequence, telemetry=None,
                 clock: Optional[Callable[[], float]] = None):
        """
        Args:
            mechanisms: Every mechanism controller this orchestrator may halt
            telemetry: Optional dashboard sink
            clock: Time source for the transition history
        """
        self.mechanisms = list(mechanisms)
        self.telemetry = telemetry
        self.clock = clock

        self.state = OrchestratorState.IDLE
        self.active_action: Optional[Action] = None
        self.step_index = 0
        self._touched: List = []
        self.history: List[Dict[str, Any]] = []

    @property
    def is_running(self) -> bool:
        return self.state == OrchestratorState.RUNNING

    @property
    def active_step(self) -> Optional[Command]:
        if self.active_action is None or self.step_index >= len(self.active_action.steps):
            return None
        return self.active_action.steps[self.step_index]

    def request(self, action: Action):
        """Start ``action``, preempting whatever is running"""
        if self.is_running:
            logging.info(f"Action '{action.name}' preempts '{self.active_action.name}'")
            self._abandon()

        self.active_action = action
        self.state = OrchestratorState.RUNNING
        self._touched = []
        self._record('started', action)
        self._start_step(0)

    def update(self):
        """Evaluate the active step; called once per tick"""
        while self.is_running:
            step = self.active_step
            step.execute()
            if not step.is_finished():
                break

            step.end(False)
            self._start_step(self.step_index + 1)

            # Blocking steps are first evaluated on the next tick
            next_step = self.active_step
            if next_step is not None and not next_step.completes_on_start:
                break

        self._publish()

    def cancel(self):
        """Explicit cancel or disable: halt every mechanism"""
        if self.is_running:
            step = self.active_step
            if step is not None:
                step.end(True)
            self._record('cancelled', self.active_action)
            logging.info(f"Action '{self.active_action.name}' cancelled")

        for mechanism in self.mechanisms:
            mechanism.halt()

        self._go_idle()

    def run_action(self, factory: Callable[[], Action]) -> Command:
        """
        Schedulable command for operator bindings

        Finishes when its action completes or another action preempts it;
        cancelling the command cancels its action.
        """
        holder = {}

        def start():
            holder['action'] = factory()
            self.request(holder['action'])

        def finished() -> bool:
            return self.active_action is not holder.get('action')

        def end(interrupted: bool):
            if interrupted and self.active_action is holder.get('action'):
                self.cancel()

        return FunctionalCommand(on_init=start, on_end=end, is_finished=finished,
                                 name=getattr(factory, '__name__', 'action'))

    def get_status(self) -> Dict[str, Any]:
        return {
            'state': self.state.value,
            'action': self.active_action.name if self.active_action else None,
            'step_index': self.step_index,
            'step': self.active_step.name if self.active_step else None,
            'transitions': len(self.history)
        }

    def _start_step(self, index: int):
        self.step_index = index
        step = self.active_step
        if step is None:
            self._record('completed', self.active_action)
            logging.info(f"Action '{self.active_action.name}' completed")
            self._go_idle()
            return

        for requirement in step.requirements:
            if requirement not in self._touched:
                self._touched.append(requirement)
        step.initialize()

    def _abandon(self):
        step = self.active_step
        if step is not None:
            step.end(True)
        self._record('preempted', self.active_action)

        for mechanism in self._touched:
            mechanism.halt()

    def _go_idle(self):
        self.state = OrchestratorState.IDLE
        self.active_action = None
        self.step_index = 0
        self._touched = []
        self._publish()

    def _record(self, event: str, action: Action):
        self.history.append({
            'event': event,
            'action': action.name,
            'step_index': self.step_index,
            'timestamp': self.clock() if self.clock else None
        })

    def _publish(self):
        publish(self.telemetry, "Orchestrator/Action",
                self.active_action.name if self.active_action else "idle")
        publish(self.telemetry, "Orchestrator/Step", self.step_index)
