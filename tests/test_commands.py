"""
Tests for the command lifecycle and the scheduler.
"""

import pytest

from robot_core.commands import (
    Command, CommandScheduler, InstantCommand, FunctionalCommand,
    WaitUntilCommand, WaitCommand
)


class FakeClock:
    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class RecordingCommand(Command):
    """Logs every lifecycle call"""

    def __init__(self, name, requirements=(), finish_after=None):
        super().__init__(name, requirements)
        self.calls = []
        self.finish_after = finish_after
        self.executions = 0

    def initialize(self):
        self.calls.append('initialize')

    def execute(self):
        self.executions += 1
        self.calls.append('execute')

    def is_finished(self):
        return self.finish_after is not None and self.executions >= self.finish_after

    def end(self, interrupted):
        self.calls.append(('end', interrupted))


class TestCommandLifecycle:
    def test_instant_command_completes_on_start(self):
        ran = []
        command = InstantCommand(lambda: ran.append(True))

        assert command.completes_on_start
        command.initialize()
        assert ran == [True]
        assert command.is_finished()

    def test_blocking_commands_do_not_complete_on_start(self):
        assert not WaitUntilCommand(lambda: True).completes_on_start
        assert not FunctionalCommand().completes_on_start

    def test_functional_command_callbacks(self):
        calls = []
        command = FunctionalCommand(
            on_init=lambda: calls.append('init'),
            on_execute=lambda: calls.append('execute'),
            on_end=lambda interrupted: calls.append(('end', interrupted)),
            is_finished=lambda: True
        )

        command.initialize()
        command.execute()
        assert command.is_finished()
        command.end(False)

        assert calls == ['init', 'execute', ('end', False)]

    def test_wait_command(self):
        clock = FakeClock(1.0)
        command = WaitCommand(0.5, clock)

        assert not command.is_finished()
        command.initialize()
        clock.now = 1.4
        assert not command.is_finished()
        clock.now = 1.5
        assert command.is_finished()

    def test_until_interrupts_inner(self):
        flag = {'done': False}
        inner = RecordingCommand("inner")
        command = inner.until(lambda: flag['done'])

        command.initialize()
        command.execute()
        assert not command.is_finished()

        flag['done'] = True
        assert command.is_finished()
        command.end(False)
        assert inner.calls[-1] == ('end', True)

    def test_until_finishes_with_inner(self):
        inner = RecordingCommand("inner", finish_after=1)
        command = inner.until(lambda: False)

        command.initialize()
        command.execute()

        assert command.is_finished()
        command.end(False)
        assert inner.calls[-1] == ('end', False)

    def test_with_timeout(self):
        clock = FakeClock()
        command = WaitUntilCommand(lambda: False).with_timeout(2.0, clock)

        command.initialize()
        command.execute()
        assert not command.is_finished()

        clock.now = 2.0
        command.execute()
        assert command.is_finished()

    def test_negative_timeout(self):
        with pytest.raises(ValueError):
            Command().with_timeout(-1.0)

    def test_wrappers_keep_requirements(self):
        subsystem = object()
        command = RecordingCommand("a", {subsystem})

        assert command.until(lambda: True).requirements == {subsystem}
        assert command.with_timeout(1.0).requirements == {subsystem}


class TestCommandScheduler:
    def test_runs_until_finished(self):
        scheduler = CommandScheduler()
        command = RecordingCommand("a", finish_after=2)

        scheduler.schedule(command)
        scheduler.run()
        assert scheduler.is_scheduled(command)
        scheduler.run()

        assert not scheduler.is_scheduled(command)
        assert command.calls == ['initialize', 'execute', 'execute', ('end', False)]

    def test_shared_requirement_interrupts_owner(self):
        scheduler = CommandScheduler()
        subsystem = object()
        first = RecordingCommand("first", {subsystem})
        second = RecordingCommand("second", {subsystem})

        scheduler.schedule(first)
        scheduler.schedule(second)

        assert not scheduler.is_scheduled(first)
        assert first.calls[-1] == ('end', True)
        assert scheduler.is_scheduled(second)

    def test_independent_commands_run_together(self):
        scheduler = CommandScheduler()
        a = RecordingCommand("a", {object()})
        b = RecordingCommand("b", {object()})

        scheduler.schedule(a)
        scheduler.schedule(b)
        scheduler.run()

        assert a.executions == 1
        assert b.executions == 1

    def test_schedule_twice_initializes_once(self):
        scheduler = CommandScheduler()
        command = RecordingCommand("a")

        scheduler.schedule(command)
        scheduler.schedule(command)

        assert command.calls == ['initialize']

    def test_cancel_all(self):
        scheduler = CommandScheduler()
        commands = [RecordingCommand(str(i)) for i in range(3)]
        for command in commands:
            scheduler.schedule(command)

        scheduler.cancel_all()

        for command in commands:
            assert command.calls[-1] == ('end', True)
            assert not scheduler.is_scheduled(command)

    def test_cancel_unscheduled_is_noop(self):
        scheduler = CommandScheduler()
        command = RecordingCommand("a")

        scheduler.cancel(command)

        assert command.calls == []

    def test_periodics_run_first_in_order(self):
        scheduler = CommandScheduler()
        order = []
        scheduler.register_periodic("vision", lambda: order.append("vision"))
        scheduler.register_periodic("orchestrator", lambda: order.append("orchestrator"))
        scheduler.schedule(FunctionalCommand(on_execute=lambda: order.append("command")))

        scheduler.run()

        assert order == ["vision", "orchestrator", "command"]
        assert scheduler.tick_count == 1
