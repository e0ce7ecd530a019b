"""
Tests for services/simulated.py

The simulated backend stands in for a server in every other test, so
its own event ordering is checked here.
"""

import pytest

from afk_rotator.core.credentials import Credential
from afk_rotator.core.scheduler import ManualScheduler
from afk_rotator.core.session import GoalBlock, GoalXZ, ServerAddress, SessionEvent
from afk_rotator.services.simulated import (
    SimulatedSession,
    SimulatedSessionFactory,
    create_session_factory,
)

ADDRESS = ServerAddress("localhost")


def record_events(session):
    events = []
    for event in SessionEvent:
        session.on(event, lambda *args, event=event: events.append((event, args)))
    return events


class TestSimulatedSession:

    def test_kick_emits_kicked_then_ended(self):
        session = SimulatedSession(Credential("a"))
        events = record_events(session)

        session.kick("{}")
        session.kick("{}")

        assert [e for e, _ in events] == [SessionEvent.KICKED, SessionEvent.ENDED]
        assert session.closed

    def test_end_emits_once(self):
        session = SimulatedSession(Credential("a"))
        events = record_events(session)
        session.end("bye")
        session.end()
        assert [e for e, _ in events] == [SessionEvent.ENDED]
        assert session.end_reason == "bye"

    def test_commands_ignored_after_close(self):
        session = SimulatedSession(Credential("a"))
        session.end()
        session.send_chat("hi")
        session.swing_arm()
        session.set_control_state("sneak", True)
        assert session.chat_sent == []
        assert session.swings == []
        assert session.control_states == {}

    def test_unsubscribe_during_emit(self):
        """A listener removed by an earlier one in the same dispatch is skipped."""
        session = SimulatedSession(Credential("a"))
        calls = []
        unsubscribe_second = None

        def first():
            calls.append("first")
            unsubscribe_second()

        session.on(SessionEvent.JOINED, first)
        unsubscribe_second = session.on(SessionEvent.JOINED, lambda: calls.append("second"))

        session.join()

        assert calls == ["first"]

    def test_unsubscribe_twice(self):
        session = SimulatedSession(Credential("a"))
        unsubscribe = session.on(SessionEvent.CHAT, lambda *a: None)
        unsubscribe()
        unsubscribe()
        assert session.listener_count() == 0

    def test_failing_listener_does_not_block_others(self, caplog):
        session = SimulatedSession(Credential("a"))
        calls = []

        def broken():
            raise RuntimeError("boom")

        session.on(SessionEvent.DIED, broken)
        session.on(SessionEvent.DIED, lambda: calls.append(True))
        session.die()

        assert calls == [True]
        assert "Listener for died failed" in caplog.text

    def test_travel_time_reaches_goal(self):
        scheduler = ManualScheduler()
        session = SimulatedSession(Credential("a"), scheduler=scheduler, travel_time=2.0)
        reached = []
        session.navigator.on(SessionEvent.GOAL_REACHED, reached.append)

        session.navigator.set_goal(GoalBlock(3, 70, 4))
        scheduler.advance(2.0)

        assert reached == [GoalBlock(3, 70, 4)]
        assert list(session.position) == [3.0, 70.0, 4.0]

    def test_goal_xz_keeps_height(self):
        session = SimulatedSession(Credential("a"), position=(0.0, 80.0, 0.0))
        session.navigator.set_goal(GoalXZ(5.0, -5.0))
        session.navigator.reach_goal()
        assert list(session.position) == [5.0, 80.0, -5.0]

    def test_close_cancels_owned_timers(self):
        scheduler = ManualScheduler()
        session = SimulatedSession(Credential("a"), scheduler=scheduler, travel_time=2.0)
        session.navigator.set_goal(GoalXZ(1.0, 1.0))
        assert session.pending_timers() == 1

        session.end()

        assert session.pending_timers() == 0
        assert scheduler.pending() == 0


class TestSimulatedSessionFactory:

    def test_joins_after_delay(self):
        scheduler = ManualScheduler()
        factory = SimulatedSessionFactory(scheduler=scheduler, join_delay=1.0)
        session = factory(ADDRESS, Credential("a"))

        assert not session.joined
        scheduler.advance(1.0)
        assert session.joined

    def test_session_lifetime(self):
        scheduler = ManualScheduler()
        factory = SimulatedSessionFactory(scheduler=scheduler, session_lifetime=30.0)
        session = factory(ADDRESS, Credential("a"))

        scheduler.advance(29.0)
        assert not session.closed
        scheduler.advance(1.0)
        assert session.closed

    def test_fail_open(self):
        factory = SimulatedSessionFactory(scheduler=ManualScheduler(), fail_open=True)
        with pytest.raises(ConnectionRefusedError):
            factory(ADDRESS, Credential("a"))
        assert factory.opened == []


class TestCreateSessionFactory:

    def test_simulated(self):
        factory = create_session_factory("simulated", scheduler=ManualScheduler(), join_delay=2.0)
        assert isinstance(factory, SimulatedSessionFactory)
        assert factory.join_delay == 2.0

    def test_unknown_backend(self):
        with pytest.raises(ValueError):
            create_session_factory("telnet", scheduler=ManualScheduler())

    def test_scheduler_required(self):
        with pytest.raises(ValueError):
            create_session_factory("simulated")
