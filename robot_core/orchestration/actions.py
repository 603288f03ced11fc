"""
Action Building Blocks

An Action is a named, ordered list of steps. Each step is a Command; the
factories below cover the three step kinds game actions are made of.
"""

from dataclasses import dataclass, field
from typing import Callable, List, Optional, Set

from ..commands import Command, InstantCommand, FunctionalCommand, WaitUntilCommand


def goal(mechanism, target: float, tolerance: Optional[float] = None) -> Command:
    """Set a mechanism goal; completes as soon as the goal is issued"""
    return InstantCommand(
        lambda: mechanism.apply_goal(target, tolerance),
        name=f"goal({mechanism.name}, {target})",
        requirements={mechanism}
    )


def block(predicate: Callable[[], bool], name: Optional[str] = None) -> Command:
    """Hold the sequence until ``predicate`` is true"""
    return WaitUntilCommand(predicate, name=name or "block")


def run_until(mechanism, output: float, predicate: Callable[[], bool]) -> Command:
    """Run a mechanism open-loop until ``predicate`` is true, then halt it"""
    return FunctionalCommand(
        on_init=lambda: mechanism.apply_goal(output),
        on_end=lambda interrupted: mechanism.halt(),
        is_finished=predicate,
        name=f"run_until({mechanism.name}, {output})",
        requirements={mechanism}
    )


@dataclass
class Action:
    """One complete game task"""
    name: str
    steps: List[Command] = field(default_factory=list)

    @property
    def mechanisms(self) -> Set:
        """Every mechanism any step requires"""
        required = set()
        for step in self.steps:
            required |= step.requirements
        return required

    def __len__(self) -> int:
        return len(self.steps)
