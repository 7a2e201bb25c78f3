import threading

import pytest

from hopwatch.exceptions import TransportError
from hopwatch.models import ProbeStatus
from hopwatch.probe.fake import FakeResponse


DEST = '203.0.113.9'
IDENT = 0x1234


def test_echo_reply_measures_rtt(make_transport, make_prober):
    transport = make_transport({DEST: [FakeResponse('reply', delay_ms=25)]})
    result = make_prober(transport).probe(DEST, sequence=4)

    assert result.status == ProbeStatus.REPLY
    assert result.responder == DEST
    assert result.rtt_ms == pytest.approx(25.0)
    assert transport.sent == [(DEST, None, IDENT, 4)]


def test_time_exceeded_reports_router(make_transport, make_prober):
    transport = make_transport({(DEST, 3): [FakeResponse('time_exceeded', source='10.0.0.3', delay_ms=8)]})
    result = make_prober(transport).probe(DEST, ttl=3, sequence=3)

    assert result.status == ProbeStatus.TIME_EXCEEDED
    assert result.responder == '10.0.0.3'
    assert result.rtt_ms == pytest.approx(8.0)


@pytest.mark.parametrize('kind,status', [
    ('unreachable', ProbeStatus.UNREACHABLE),
    ('redirect', ProbeStatus.OTHER),
])
def test_other_error_types(make_transport, make_prober, kind, status):
    transport = make_transport({DEST: [FakeResponse(kind, source='10.0.0.1')]})
    result = make_prober(transport).probe(DEST)

    assert result.status == status
    assert result.rtt_ms is not None


def test_timeout_consumes_whole_wait(make_transport, make_prober, clock):
    transport = make_transport()
    start = clock.now

    result = make_prober(transport).probe(DEST)

    assert result.status == ProbeStatus.TIMEOUT
    assert result.rtt_ms is None
    assert clock.now - start == pytest.approx(3.0)


def test_late_answer_is_a_timeout(make_transport, make_prober):
    transport = make_transport({DEST: [FakeResponse('reply', delay_ms=3500)]})
    assert make_prober(transport).probe(DEST).status == ProbeStatus.TIMEOUT


def test_foreign_identifier_is_skipped(make_transport, make_prober):
    transport = make_transport({DEST: [[
        FakeResponse('reply', identifier=0x9999, delay_ms=2),
        FakeResponse('time_exceeded', source='10.0.0.1', identifier=0x9999, delay_ms=2),
        FakeResponse('reply', delay_ms=5),
    ]]})

    result = make_prober(transport).probe(DEST)

    assert result.status == ProbeStatus.REPLY
    assert result.rtt_ms == pytest.approx(9.0)


def test_stale_sequence_is_skipped(make_transport, make_prober):
    transport = make_transport({DEST: [[FakeResponse('reply', sequence=1, delay_ms=2)]]})
    result = make_prober(transport).probe(DEST, sequence=2)
    assert result.status == ProbeStatus.TIMEOUT


def test_reply_from_unexpected_address_is_skipped(make_transport, make_prober):
    transport = make_transport({'10.0.0.1': [[
        FakeResponse('reply', source='10.0.0.2', delay_ms=1),
        FakeResponse('reply', delay_ms=4),
    ]]})

    result = make_prober(transport).probe('10.0.0.1', expect_from='10.0.0.1')

    assert result.status == ProbeStatus.REPLY
    assert result.responder == '10.0.0.1'


def test_malformed_datagram_ends_cycle(make_transport, make_prober):
    transport = make_transport({DEST: [[FakeResponse('garbage'), FakeResponse('reply')]]})
    result = make_prober(transport).probe(DEST)

    assert result.status == ProbeStatus.MALFORMED
    assert result.rtt_ms is None


def test_cancelled_wait_returns_timeout(make_transport, make_prober):
    transport = make_transport({DEST: [FakeResponse('reply')]})
    cancel = threading.Event()
    cancel.set()

    assert make_prober(transport).probe(DEST, cancel=cancel).status == ProbeStatus.TIMEOUT


def test_send_failure_propagates(make_transport, make_prober):
    transport = make_transport(fail_sends={DEST})
    with pytest.raises(TransportError):
        make_prober(transport).probe(DEST)


def test_unroutable_send_is_unreachable(make_transport, make_prober):
    transport = make_transport(unreachable_sends={DEST})
    result = make_prober(transport).probe(DEST)

    assert result.status == ProbeStatus.UNREACHABLE
    assert result.responder == DEST
    assert transport.sent == []
