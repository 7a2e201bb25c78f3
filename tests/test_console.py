from rich.console import Console

from hopwatch.models import Hop, HopUpdate, ScannerStatus
from hopwatch.output.console import (
    SPARK_CHARS,
    SPARK_TIMEOUT,
    STYLE_GOOD,
    STYLE_HIGH,
    STYLE_MEDIUM,
    STYLE_TIMEOUT,
    ConsoleOutput,
    LiveView,
    format_latency,
    format_loss,
    format_status,
    hop_state,
    latency_style,
    sparkline,
)


def test_latency_thresholds():
    assert latency_style(None) == STYLE_TIMEOUT
    assert latency_style(10) == STYLE_GOOD
    assert latency_style(50) == STYLE_MEDIUM
    assert latency_style(149.9) == STYLE_MEDIUM
    assert latency_style(150) == STYLE_HIGH


def test_hop_state():
    assert hop_state(Hop()) == 'Unknown'
    assert hop_state(Hop(address='10.0.0.1')) == 'Timeout'
    assert hop_state(Hop(address='10.0.0.1', avg_latency=3.2)) == 'Active'


def test_formatting():
    hop = Hop(address='10.0.0.1', avg_latency=12.345, loss_percent=100)
    assert format_latency(hop) == '12.35 ms'
    assert format_loss(hop) == '100.0%'
    assert format_latency(Hop()) == 'N/A'
    assert format_loss(Hop()) == '0%'


def test_status_text():
    assert format_status(ScannerStatus.TRACING) == 'Tracing route to destination...'
    assert format_status(ScannerStatus.PINGING, 7) == 'Monitoring 7 hops...'
    assert format_status(ScannerStatus.STOPPED) == 'Stopped'
    assert format_status(ScannerStatus.ERROR) == 'Error occurred'


def test_sparkline_scales_to_peak():
    line = sparkline((10.0, None, 40.0, 200.0))

    assert line.plain[1] == SPARK_TIMEOUT
    assert line.plain[3] == SPARK_CHARS[-1]
    assert line.plain[0] == SPARK_CHARS[0]
    assert len(line.plain) == 4


def test_sparkline_width_keeps_newest():
    line = sparkline((None,) * 10 + (5.0,), width=3)
    assert line.plain == SPARK_TIMEOUT * 2 + SPARK_CHARS[-1]


def test_live_view_accepts_sparse_updates():
    view = LiveView('example.test')
    view.apply(HopUpdate(index=2, hop=Hop(address='10.0.0.3', avg_latency=9.0,
                                         latency_history=(9.0,))))
    view.apply(HopUpdate(index=0, hop=Hop(address='10.0.0.1')))

    hops = view.hops()
    assert [h.address for h in hops] == ['10.0.0.1', '', '10.0.0.3']

    view.set_status(ScannerStatus.PINGING)
    assert view.status_text == 'Monitoring 3 hops...'


def test_live_view_renders_table():
    console = Console(record=True, width=140)
    view = LiveView('example.test')
    view.resolved = '203.0.113.9'
    view.apply(HopUpdate(index=0, hop=Hop(address='10.0.0.1', avg_latency=9.5,
                                         latency_history=(9.5,))))

    console.print(view)
    text = console.export_text()

    assert '10.0.0.1' in text
    assert '9.50 ms' in text
    assert 'Active' in text
    assert 'example.test' in text


def test_console_output_messages():
    console = Console(record=True, width=120)
    output = ConsoleOutput(console)

    output.print_header('example.test', '203.0.113.9', 1.0, 3.0, 30, 'rejection')
    output.print_error('boom')
    text = console.export_text()

    assert 'example.test' in text
    assert '203.0.113.9' in text
    assert 'Error: boom' in text
