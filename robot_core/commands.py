"""
Command Framework
Cooperative command lifecycle and the fixed-period scheduler that runs it
"""

import time
import logging
from typing import Callable, Dict, Iterable, List, Optional, Tuple


class Command:
    """
    Unit of work run by the scheduler, one execute() per tick

    Lifecycle: initialize() once, then execute()/is_finished() every tick
    until finished or cancelled, then end(interrupted).
    """

    completes_on_start = False

    def __init__(self, name: Optional[str] = None, requirements: Iterable = ()):
        self.name = name or type(self).__name__
        self.requirements = set(requirements)

    def initialize(self):
        pass

    def execute(self):
        pass

    def is_finished(self) -> bool:
        return False

    def end(self, interrupted: bool):
        pass

    def until(self, condition: Callable[[], bool]) -> 'Command':
        """Finish early once ``condition`` holds"""
        return _UntilCommand(self, condition)

    def with_timeout(self, seconds: float,
                     clock: Callable[[], float] = time.monotonic) -> 'Command':
        """Interrupt after ``seconds`` if still running"""
        if seconds < 0:
            raise ValueError("Timeout must be non-negative")
        return _TimeoutCommand(self, seconds, clock)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class InstantCommand(Command):
    """Runs an action once and finishes"""

    completes_on_start = True

    def __init__(self, action: Callable[[], None] = lambda: None,
                 name: Optional[str] = None, requirements: Iterable = ()):
        super().__init__(name, requirements)
        self.action = action

    def initialize(self):
        self.action()

    def is_finished(self) -> bool:
        return True


class FunctionalCommand(Command):
    """Command assembled from callbacks"""

    def __init__(self, on_init: Callable[[], None] = lambda: None,
                 on_execute: Callable[[], None] = lambda: None,
                 on_end: Callable[[bool], None] = lambda interrupted: None,
                 is_finished: Callable[[], bool] = lambda: False,
                 name: Optional[str] = None, requirements: Iterable = ()):
        super().__init__(name, requirements)
        self._on_init = on_init
        self._on_execute = on_execute
        self._on_end = on_end
        self._is_finished = is_finished

    def initialize(self):
        self._on_init()

    def execute(self):
        self._on_execute()

    def is_finished(self) -> bool:
        return bool(self._is_finished())

    def end(self, interrupted: bool):
        self._on_end(interrupted)


class WaitUntilCommand(Command):
    """Finishes once the condition becomes true; polled, never blocks"""

    def __init__(self, condition: Callable[[], bool], name: Optional[str] = None):
        super().__init__(name)
        self.condition = condition

    def is_finished(self) -> bool:
        return bool(self.condition())


class WaitCommand(Command):
    """Finishes after a fixed duration"""

    def __init__(self, seconds: float, clock: Callable[[], float] = time.monotonic,
                 name: Optional[str] = None):
        super().__init__(name)
        self.seconds = seconds
        self.clock = clock
        self._start = None

    def initialize(self):
        self._start = self.clock()

    def is_finished(self) -> bool:
        return self._start is not None and self.clock() - self._start >= self.seconds


class _UntilCommand(Command):
    def __init__(self, inner: Command, condition: Callable[[], bool]):
        super().__init__(inner.name, inner.requirements)
        self.inner = inner
        self.condition = condition
        self._inner_done = False

    def initialize(self):
        self._inner_done = False
        self.inner.initialize()

    def execute(self):
        if not self._inner_done:
            self.inner.execute()
            self._inner_done = self.inner.is_finished()

    def is_finished(self) -> bool:
        return self._inner_done or bool(self.condition())

    def end(self, interrupted: bool):
        # Stopping on the condition counts as an interruption of the inner command
        self.inner.end(interrupted or not self._inner_done)


class _TimeoutCommand(_UntilCommand):
    def __init__(self, inner: Command, seconds: float, clock: Callable[[], float]):
        super().__init__(inner, self._expired)
        self.seconds = seconds
        self.clock = clock
        self._start = None

    def initialize(self):
        self._start = self.clock()
        super().initialize()

    def _expired(self) -> bool:
        return self._start is not None and self.clock() - self._start >= self.seconds


class CommandScheduler:
    """
    Runs registered periodic callbacks and scheduled commands once per tick

    Scheduling a command cancels any running command that shares one of its
    requirements.
    """

    def __init__(self, period: float = 0.02):
        self.period = period
        self._periodics: List[Tuple[str, Callable[[], None]]] = []
        self._scheduled: List[Command] = []
        self._owners: Dict[object, Command] = {}
        self.tick_count = 0

    def register_periodic(self, name: str, callback: Callable[[], None]):
        """Callbacks run every tick, before commands, in registration order"""
        self._periodics.append((name, callback))

    def schedule(self, command: Command):
        if command in self._scheduled:
            return

        for requirement in command.requirements:
            owner = self._owners.get(requirement)
            if owner is not None:
                self.cancel(owner)

        self._scheduled.append(command)
        for requirement in command.requirements:
            self._owners[requirement] = command

        logging.debug(f"Scheduled {command.name}")
        command.initialize()

    def is_scheduled(self, command: Command) -> bool:
        return command in self._scheduled

    def cancel(self, command: Command):
        if command not in self._scheduled:
            return
        self._release(command)
        logging.debug(f"Cancelled {command.name}")
        command.end(True)

    def cancel_all(self):
        for command in list(self._scheduled):
            self.cancel(command)

    def run(self):
        """One control tick"""
        for name, callback in self._periodics:
            callback()

        for command in list(self._scheduled):
            if command not in self._scheduled:
                continue
            command.execute()
            if command.is_finished():
                self._release(command)
                command.end(False)

        self.tick_count += 1

    def _release(self, command: Command):
        self._scheduled.remove(command)
        for requirement in command.requirements:
            if self._owners.get(requirement) is command:
                del self._owners[requirement]
