"""
Tests for the action orchestrator.

Verifies:
1. Step 0's goal is issued on request, before any predicate is evaluated
2. Blocking steps advance on the tick their predicate becomes true
3. Preemption halts every touched mechanism before the new action starts
4. Cancellation halts every managed mechanism
"""

import pytest

from robot_core.commands import CommandScheduler
from robot_core.orchestration.actions import Action, goal, block, run_until
from robot_core.orchestration.orchestrator import ActionOrchestrator, OrchestratorState
from robot_core.telemetry import DictTelemetrySink

from conftest import record_calls


GRIPPER_OPEN = -0.5


def score_action(name, lift, gripper, height, predicate_log=None):
    def lift_at_goal():
        if predicate_log is not None:
            predicate_log.append(('predicate', name))
        return lift.is_at_goal()

    return Action(name, [
        goal(lift, height),
        block(lift_at_goal, name="lift at goal"),
        goal(gripper, GRIPPER_OPEN),
    ])


@pytest.fixture
def orchestrator(mechanisms):
    return ActionOrchestrator(mechanisms)


class TestRequest:
    def test_first_goal_issued_before_any_predicate(self, orchestrator, lift, gripper):
        events = []
        record_calls(lift, events)
        action = score_action("score-L4", lift, gripper, 3.0, predicate_log=events)

        orchestrator.request(action)

        assert events == [('goal', 'lift', 3.0)]
        assert orchestrator.is_running
        assert orchestrator.step_index == 0

        orchestrator.update()
        orchestrator.update()

        assert events.count(('goal', 'lift', 3.0)) == 1
        assert events.index(('goal', 'lift', 3.0)) == 0

    def test_zero_step_action_completes_immediately(self, orchestrator):
        orchestrator.request(Action("nothing", []))

        assert orchestrator.state == OrchestratorState.IDLE
        assert orchestrator.active_action is None
        assert [h['event'] for h in orchestrator.history] == ['started', 'completed']

    def test_goal_steps_chain_within_one_tick(self, orchestrator, lift, arm, gripper):
        action = Action("pose", [
            goal(arm, 30.0),
            goal(lift, 2.0),
            goal(gripper, 0.1),
        ])

        orchestrator.request(action)
        orchestrator.update()

        assert orchestrator.state == OrchestratorState.IDLE
        assert lift.goal.target == 2.0
        assert gripper.goal.target == 0.1


class TestBlockingStep:
    """Lift at 0.0 with goal 3.0: the block advances once the lift is in band."""

    def test_block_advances_on_tick_after_goal_reached(self, orchestrator, lift, gripper):
        orchestrator.request(score_action("score-L4", lift, gripper, 3.0))

        orchestrator.update()
        assert orchestrator.step_index == 1

        for height in (0.5, 1.5, 2.5, 2.85):
            lift.motor.position = height
            orchestrator.update()
            assert orchestrator.step_index == 1
            assert gripper.goal is None

        lift.motor.position = 2.95
        assert lift.is_at_goal()
        orchestrator.update()

        assert gripper.goal.target == GRIPPER_OPEN
        assert orchestrator.state == OrchestratorState.IDLE
        assert orchestrator.history[-1]['event'] == 'completed'

    def test_block_first_evaluated_on_next_tick(self, orchestrator, lift, gripper):
        calls = []
        lift.motor.position = 3.0
        orchestrator.request(score_action("score-L4", lift, gripper, 3.0, predicate_log=calls))

        orchestrator.update()

        assert calls == []
        assert orchestrator.step_index == 1

        orchestrator.update()
        assert len(calls) == 1
        assert orchestrator.state == OrchestratorState.IDLE

    def test_goal_never_reached_is_not_an_error(self, orchestrator, lift, gripper):
        orchestrator.request(score_action("score-L4", lift, gripper, 3.0))
        for _ in range(500):
            orchestrator.update()

        assert orchestrator.is_running
        assert orchestrator.step_index == 1

    def test_timeout_composed_by_caller(self, orchestrator, lift, gripper):
        clock = {'now': 0.0}
        action = Action("timed", [
            goal(lift, 3.0),
            block(lift.is_at_goal).with_timeout(1.0, lambda: clock['now']),
            goal(gripper, GRIPPER_OPEN),
        ])

        orchestrator.request(action)
        orchestrator.update()
        clock['now'] = 1.0
        orchestrator.update()

        assert gripper.goal.target == GRIPPER_OPEN
        assert not orchestrator.is_running


class TestPreemption:
    def test_score_l4_preempted_by_score_l1(self, orchestrator, lift, gripper):
        events = []
        record_calls(lift, events)
        record_calls(gripper, events)

        orchestrator.request(score_action("score-L4", lift, gripper, 3.0))
        orchestrator.update()
        lift.motor.position = 1.2

        orchestrator.request(score_action("score-L1", lift, gripper, 1.0))

        assert events == [
            ('goal', 'lift', 3.0),
            ('halt', 'lift'),
            ('goal', 'lift', 1.0),
        ]
        assert lift.goal.target == 1.0
        assert orchestrator.active_action.name == "score-L1"
        assert [h['event'] for h in orchestrator.history] == ['started', 'preempted', 'started']

        # The L4 block never completes; the L1 sequence runs to the end
        lift.motor.position = 1.0
        orchestrator.update()
        orchestrator.update()
        assert gripper.goal.target == GRIPPER_OPEN
        assert events.count(('goal', 'gripper', GRIPPER_OPEN)) == 1

    def test_only_touched_mechanisms_halted(self, orchestrator, lift, arm, intake, gripper):
        events = []
        for mechanism in (lift, arm, intake, gripper):
            record_calls(mechanism, events)

        orchestrator.request(Action("a", [
            goal(arm, 30.0),
            goal(lift, 3.0),
            block(lambda: False),
            goal(gripper, GRIPPER_OPEN),
        ]))
        orchestrator.update()
        events.clear()

        orchestrator.request(Action("b", [goal(intake, 0.5)]))

        assert events == [('halt', 'arm'), ('halt', 'lift'), ('goal', 'intake', 0.5)]

    def test_interrupted_step_is_ended(self, orchestrator, intake):
        orchestrator.request(Action("collect", [run_until(intake, 0.5, lambda: False)]))
        assert intake.motor.applied_voltage == pytest.approx(6.0)

        orchestrator.request(Action("other", []))

        assert intake.is_stopped


class TestCancel:
    def test_cancel_halts_every_mechanism(self, orchestrator, mechanisms, lift, gripper):
        for mechanism in mechanisms:
            mechanism.apply_goal(0.5)
        orchestrator.request(score_action("score-L4", lift, gripper, 3.0))

        orchestrator.cancel()

        assert orchestrator.state == OrchestratorState.IDLE
        for mechanism in mechanisms:
            assert mechanism.is_stopped
        assert orchestrator.history[-1]['event'] == 'cancelled'

    def test_cancel_while_idle(self, orchestrator, mechanisms):
        orchestrator.cancel()

        assert orchestrator.state == OrchestratorState.IDLE
        assert all(m.is_stopped for m in mechanisms)


class TestRunAction:
    """Scheduler-facing wrapper for operator bindings."""

    def test_finishes_when_action_completes(self, orchestrator, lift, gripper):
        scheduler = CommandScheduler()
        scheduler.register_periodic("orchestrator", orchestrator.update)
        command = orchestrator.run_action(lambda: score_action("score-L4", lift, gripper, 3.0))

        scheduler.schedule(command)
        scheduler.run()
        assert scheduler.is_scheduled(command)

        lift.motor.position = 3.0
        scheduler.run()

        assert not scheduler.is_scheduled(command)
        assert gripper.goal.target == GRIPPER_OPEN

    def test_finishes_when_preempted(self, orchestrator, lift, gripper):
        scheduler = CommandScheduler()
        first = orchestrator.run_action(lambda: score_action("score-L4", lift, gripper, 3.0))
        second = orchestrator.run_action(lambda: score_action("score-L1", lift, gripper, 1.0))

        scheduler.schedule(first)
        scheduler.schedule(second)
        scheduler.run()

        assert not scheduler.is_scheduled(first)
        assert scheduler.is_scheduled(second)
        assert orchestrator.active_action.name == "score-L1"

    def test_cancelling_command_cancels_action(self, orchestrator, lift, gripper):
        scheduler = CommandScheduler()
        command = orchestrator.run_action(lambda: score_action("score-L4", lift, gripper, 3.0))

        scheduler.schedule(command)
        scheduler.cancel(command)

        assert not orchestrator.is_running
        assert lift.is_stopped


class TestTelemetry:
    def test_publishes_action_and_step(self, mechanisms, lift, gripper):
        sink = DictTelemetrySink()
        orchestrator = ActionOrchestrator(mechanisms, telemetry=sink, clock=lambda: 42.0)

        orchestrator.request(score_action("score-L4", lift, gripper, 3.0))
        orchestrator.update()

        assert sink.get("Orchestrator/Action") == "score-L4"
        assert sink.get("Orchestrator/Step") == 1.0
        assert orchestrator.history[0]['timestamp'] == 42.0

        orchestrator.cancel()
        assert sink.get("Orchestrator/Action") == "idle"

    def test_status(self, orchestrator, lift, gripper):
        orchestrator.request(score_action("score-L4", lift, gripper, 3.0))
        orchestrator.update()

        status = orchestrator.get_status()

        assert status['state'] == 'running'
        assert status['action'] == 'score-L4'
        assert status['step'] == 'lift at goal'
