"""
Superstructure Game Actions

Factories for every scoring, intake and endgame action, plus schedulable
command wrappers for operator bindings and autonomous routines.
"""

from typing import Callable, Optional

from .actions import Action, goal, block, run_until
from .orchestrator import ActionOrchestrator
from ..commands import Command
from ..config import SetpointConfig
from ..control.hardware import GamePieceSensor


class LevelSelector:
    """Dashboard-selected coral scoring level"""

    LEVELS = (1, 2, 3, 4)

    def __init__(self, default: int = 4):
        self.select(default)

    def select(self, level: int):
        if level not in self.LEVELS:
            raise ValueError(f"Unknown coral level: {level}")
        self.level = level


class Superstructure:
    """Lift, arm, intake, gripper and climber acting together"""

    def __init__(self, lift, arm, intake, gripper, climber,
                 orchestrator: Optional[ActionOrchestrator] = None,
                 setpoints: Optional[SetpointConfig] = None,
                 game_piece_sensor: Optional[GamePieceSensor] = None,
                 telemetry=None):
        self.lift = lift
        self.arm = arm
        self.intake = intake
        self.gripper = gripper
        self.climber = climber
        self.setpoints = setpoints or SetpointConfig()
        self.game_piece_sensor = game_piece_sensor
        self.orchestrator = orchestrator or ActionOrchestrator(
            [lift, arm, intake, gripper, climber], telemetry
        )
        self.level_selector = LevelSelector()

    def coral_height(self, level: int) -> float:
        heights = {
            1: self.setpoints.score_level_one,
            2: self.setpoints.score_level_two,
            3: self.setpoints.score_level_three,
            4: self.setpoints.score_level_four,
        }
        if level not in heights:
            raise ValueError(f"Unknown coral level: {level}")
        return heights[level]

    def lift_and_arm_at_goal(self) -> bool:
        return self.lift.is_at_goal() and self.arm.is_at_goal()

    def has_game_piece(self) -> bool:
        # Without a sensor the intake step only ends when preempted
        return self.game_piece_sensor is not None and self.game_piece_sensor.has_game_piece()

    def score_coral(self, level: int) -> Action:
        sp = self.setpoints
        return Action(f"score-L{level}", [
            goal(self.arm, sp.coral_score_angle),
            goal(self.lift, self.coral_height(level)),
            block(self.lift_and_arm_at_goal, name="lift and arm at goal"),
            goal(self.gripper, sp.gripper_release_duty),
        ])

    def score_selected_coral(self) -> Action:
        return self.score_coral(self.level_selector.level)

    def intake_coral(self) -> Action:
        sp = self.setpoints
        return Action("intake-coral", [
            goal(self.lift, sp.coral_intake_height),
            goal(self.arm, sp.coral_intake_angle),
            block(self.lift_and_arm_at_goal, name="lift and arm at goal"),
            run_until(self.intake, sp.intake_duty, self.has_game_piece),
            goal(self.gripper, sp.gripper_hold_duty),
        ])

    def grab_algae(self, high: bool) -> Action:
        sp = self.setpoints
        height = sp.algae_high_height if high else sp.algae_low_height
        return Action(f"grab-algae-{'high' if high else 'low'}", [
            goal(self.arm, sp.algae_angle),
            goal(self.lift, height),
            block(self.lift_and_arm_at_goal, name="lift and arm at goal"),
            goal(self.gripper, sp.gripper_grab_duty),
        ])

    def _score_algae(self, name: str, height: float, angle: float) -> Action:
        sp = self.setpoints
        return Action(name, [
            goal(self.lift, height),
            goal(self.arm, angle),
            block(self.lift_and_arm_at_goal, name="lift and arm at goal"),
            goal(self.gripper, sp.gripper_release_duty),
        ])

    def score_algae_processor(self) -> Action:
        return self._score_algae("score-algae-processor",
                                 self.setpoints.algae_processor_height, self.setpoints.algae_angle)

    def score_algae_barge(self) -> Action:
        return self._score_algae("score-algae-barge",
                                 self.setpoints.algae_barge_height, self.setpoints.barge_angle)

    def stow(self) -> Action:
        sp = self.setpoints
        return Action("stow", [
            goal(self.gripper, 0.0),
            goal(self.intake, 0.0),
            goal(self.arm, sp.stow_angle),
            goal(self.lift, sp.down),
            block(self.lift_and_arm_at_goal, name="lift and arm at goal"),
        ])

    def climb(self) -> Action:
        sp = self.setpoints
        return Action("climb", [
            goal(self.lift, sp.down),
            goal(self.arm, sp.climb_angle),
            block(self.lift_and_arm_at_goal, name="lift and arm at goal"),
            goal(self.climber, sp.climber_duty),
        ])

    # Command factories for operator bindings

    def _command(self, factory: Callable[[], Action]) -> Command:
        return self.orchestrator.run_action(factory)

    def score_coral_command(self, level: int) -> Command:
        self.coral_height(level)
        return self._command(lambda: self.score_coral(level))

    def score_selected_coral_command(self) -> Command:
        return self._command(self.score_selected_coral)

    def intake_coral_command(self) -> Command:
        return self._command(self.intake_coral)

    def grab_algae_command(self, high: bool) -> Command:
        return self._command(lambda: self.grab_algae(high))

    def score_algae_processor_command(self) -> Command:
        return self._command(self.score_algae_processor)

    def score_algae_barge_command(self) -> Command:
        return self._command(self.score_algae_barge)

    def stow_command(self) -> Command:
        return self._command(self.stow)

    def climb_command(self) -> Command:
        return self._command(self.climb)
