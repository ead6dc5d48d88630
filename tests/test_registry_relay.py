import asyncio

import pytest

from editsync.domains.collaboration import (
    ChangeRelay, RealtimeSession, SessionClosed, SessionRegistry
)


class FakeWebSocket:
    def __init__(self, fail: bool = False):
        self.sent = []
        self.fail = fail

    async def send_json(self, message):
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(message)


class BrokenSession:
    """Сессия, доставка в которую всегда падает"""

    def __init__(self, session_id: str):
        self.session_id = session_id

    def deliver(self, message):
        raise RuntimeError("broken pipe")


def drain(session: RealtimeSession):
    messages = []
    while not session.queue.empty():
        messages.append(session.queue.get_nowait())
    return messages


@pytest.fixture
def registry():
    return SessionRegistry()


async def make_sessions(registry, count):
    sessions = [RealtimeSession(FakeWebSocket()) for _ in range(count)]
    for session in sessions:
        registry.register(session)
    return sessions


async def test_change_reaches_everyone_but_sender(registry):
    a, b, c = await make_sessions(registry, 3)
    for session in (a, b, c):
        registry.join(session.session_id, "doc1")

    delivered = ChangeRelay(registry).relay_change(a.session_id, "doc1", {"ops": [1, 2]})

    assert delivered == 2
    assert drain(a) == []
    assert drain(b) == [{"type": "document-update", "data": {"ops": [1, 2]}}]
    assert drain(c) == [{"type": "document-update", "data": {"ops": [1, 2]}}]


async def test_join_and_leave_are_idempotent(registry):
    a, = await make_sessions(registry, 1)

    registry.join(a.session_id, "doc1")
    registry.join(a.session_id, "doc1")
    assert registry.members_of("doc1") == {a.session_id}

    registry.leave(a.session_id, "doc1")
    registry.leave(a.session_id, "doc1")
    assert registry.members_of("doc1") == set()
    assert registry.rooms_of(a.session_id) == set()


async def test_disconnect_removes_session_from_every_room(registry):
    a, b = await make_sessions(registry, 2)
    for room in ("doc1", "doc2"):
        registry.join(a.session_id, room)
        registry.join(b.session_id, room)

    left = registry.on_disconnect(b.session_id)

    assert left == {"doc1", "doc2"}
    assert b.session_id not in registry.members_of("doc1")
    assert b.session_id not in registry.members_of("doc2")
    assert registry.get(b.session_id) is None
    # повторный вызов ничего не делает
    assert registry.on_disconnect(b.session_id) == set()

    relay = ChangeRelay(registry)
    assert relay.relay_change(a.session_id, "doc1", "x") == 0
    assert drain(b) == []


async def test_rooms_are_independent(registry):
    a, b, c = await make_sessions(registry, 3)
    registry.join(a.session_id, "doc1")
    registry.join(b.session_id, "doc1")
    registry.join(c.session_id, "doc2")

    ChangeRelay(registry).relay_change(a.session_id, "doc1", "payload")

    assert len(drain(b)) == 1
    assert drain(c) == []


async def test_registries_do_not_share_state():
    first, second = SessionRegistry(), SessionRegistry()
    session = RealtimeSession(FakeWebSocket())
    first.register(session)
    first.join(session.session_id, "doc1")

    assert second.members_of("doc1") == set()
    assert len(second) == 0


async def test_per_sender_order_is_preserved(registry):
    a, b = await make_sessions(registry, 2)
    registry.join(a.session_id, "doc1")
    registry.join(b.session_id, "doc1")

    relay = ChangeRelay(registry)
    for n in range(5):
        relay.relay_change(a.session_id, "doc1", n)

    assert [message["data"] for message in drain(b)] == [0, 1, 2, 3, 4]


async def test_failed_recipient_does_not_block_others(registry):
    a, c = await make_sessions(registry, 2)
    broken = BrokenSession("broken")
    registry.register(broken)
    closed = RealtimeSession(FakeWebSocket())
    registry.register(closed)
    closed.close()

    for session in (a, broken, closed, c):
        registry.join(session.session_id, "doc1")

    delivered = ChangeRelay(registry).relay_change(a.session_id, "doc1", "payload")

    assert delivered == 1
    assert drain(c) == [{"type": "document-update", "data": "payload"}]


async def test_writer_sends_messages_in_order():
    websocket = FakeWebSocket()
    session = RealtimeSession(websocket)
    writer = asyncio.create_task(session.run_writer())

    for n in range(3):
        session.deliver({"type": "document-update", "data": n})
    session.close()
    await asyncio.wait_for(writer, timeout=1)

    assert [message["data"] for message in websocket.sent] == [0, 1, 2]


async def test_writer_stops_on_socket_failure():
    session = RealtimeSession(FakeWebSocket(fail=True))
    writer = asyncio.create_task(session.run_writer())

    session.deliver({"type": "pong"})
    await asyncio.wait_for(writer, timeout=1)

    assert session.closed
    with pytest.raises(SessionClosed):
        session.deliver({"type": "pong"})


async def test_overflowing_session_is_closed_and_dropped(registry):
    a, = await make_sessions(registry, 1)
    slow = RealtimeSession(FakeWebSocket(), max_pending=2)
    registry.register(slow)
    registry.join(a.session_id, "doc1")
    registry.join(slow.session_id, "doc1")

    relay = ChangeRelay(registry)
    # писатель не запущен, клиент не читает
    assert relay.relay_change(a.session_id, "doc1", 1) == 1
    assert relay.relay_change(a.session_id, "doc1", 2) == 1
    assert relay.relay_change(a.session_id, "doc1", 3) == 0

    assert slow.closed
    assert registry.get(slow.session_id) is None
    assert registry.members_of("doc1") == {a.session_id}
    # в очереди остался только сигнал остановки писателя
    assert drain(slow) == [None]

    with pytest.raises(SessionClosed):
        slow.deliver({"type": "pong"})


async def test_close_with_full_queue_stops_writer():
    websocket = FakeWebSocket()
    session = RealtimeSession(websocket, max_pending=1)
    session.deliver({"type": "pong"})

    session.close()
    await asyncio.wait_for(session.run_writer(), timeout=1)

    assert session.closed
    assert websocket.sent == []


async def test_recipients_failing_check_leave_the_room(registry):
    a, b, c = await make_sessions(registry, 3)
    for session in (a, b, c):
        registry.join(session.session_id, "doc1")

    delivered = ChangeRelay(registry).relay_change(
        a.session_id, "doc1", "payload", allowed=lambda session: session is not b
    )

    assert delivered == 1
    assert drain(b) == []
    assert drain(c) == [{"type": "document-update", "data": "payload"}]
    assert registry.members_of("doc1") == {a.session_id, c.session_id}
    assert registry.get(b.session_id) is b
