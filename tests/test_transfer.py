from __future__ import annotations

import threading

import pytest

from conftest import make_session
from tftpd.errors import Cancelled, IllegalOperation, PeerAborted, TransferTimeout
from tftpd.packet import Ack, Data, Error
from tftpd.transfer import acknowledges, exchange, next_block, require_data


def test_next_block_wraps():
    assert next_block(1) == 2
    assert next_block(65535) == 0


def test_matching_ack_returns_first_try():
    session = make_session([Ack(1)])
    reply = exchange(session, Data(1, b"x"), acknowledges(1), attempts=5, exhausted=TransferTimeout())
    assert reply == Ack(1)
    assert session.endpoint.packets == [Data(1, b"x")]
    assert session.retries == 0
    assert session.retransmits == 0


def test_stale_and_future_acks_resend_same_packet():
    session = make_session([Ack(0), Ack(2), Ack(1)])
    exchange(session, Data(1, b"x"), acknowledges(1), attempts=5, exhausted=TransferTimeout())
    assert session.endpoint.packets == [Data(1, b"x")] * 3
    assert session.retransmits == 2


def test_attempts_exhausted_raises_given_error():
    session = make_session([None, Ack(9), None])
    with pytest.raises(TransferTimeout) as info:
        exchange(session, Data(1, b"x"), acknowledges(1), attempts=3, exhausted=TransferTimeout("gave up"))
    assert info.value.message == "gave up"
    assert len(session.endpoint.sent) == 3
    assert session.timeouts == 2
    assert session.retries == 3


def test_peer_error_aborts_without_retry():
    session = make_session([Error(2, "nope"), Ack(1)])
    with pytest.raises(PeerAborted) as info:
        exchange(session, Data(1, b"x"), acknowledges(1), attempts=5, exhausted=TransferTimeout())
    assert info.value.code == 2
    assert info.value.message == "nope"
    assert len(session.endpoint.sent) == 1


def test_undecodable_reply_is_illegal():
    session = make_session([b"\x00\x09"])
    with pytest.raises(IllegalOperation):
        exchange(session, Data(1, b"x"), acknowledges(1), attempts=5, exhausted=TransferTimeout())


def test_wait_only_sends_nothing():
    session = make_session([Data(1, b"abc")])
    reply = exchange(session, None, require_data, attempts=1, exhausted=TransferTimeout())
    assert reply == Data(1, b"abc")
    assert session.endpoint.sent == []


def test_require_data_rejects_other_packets():
    session = make_session([Ack(1)])
    with pytest.raises(IllegalOperation):
        exchange(session, Ack(0), require_data, attempts=1, exhausted=TransferTimeout())


def test_cancelled_session_stops_before_sending():
    cancel = threading.Event()
    cancel.set()
    session = make_session([Ack(1)], cancel=cancel)
    with pytest.raises(Cancelled):
        exchange(session, Data(1, b"x"), acknowledges(1), attempts=5, exhausted=TransferTimeout())
    assert session.endpoint.sent == []
