from click.testing import CliRunner

from hopwatch import __version__, cli
from hopwatch.exceptions import ResolutionError
from hopwatch.probe.fake import FakeResponse, FakeTransport
from hopwatch.scanner import Scanner


DEST = '203.0.113.9'


def path_script():
    return {
        (DEST, 1): [FakeResponse('time_exceeded', source='10.0.0.1', delay_ms=3)],
        (DEST, 2): [FakeResponse('reply', delay_ms=8)],
        '10.0.0.1': [FakeResponse('reply', delay_ms=3)] * 100,
        DEST: [FakeResponse('reply', delay_ms=8)] * 100,
    }


def fake_scanner_factory(transports, script=None):
    def factory(hostname, config, resolver):
        def transport_factory(_config):
            transport = FakeTransport(path_script() if script is None else script)
            transports.append(transport)
            return transport
        return Scanner(hostname, config, resolver=resolver,
                       transport_factory=transport_factory, identifier=0x4242)
    return factory


def test_version():
    result = CliRunner().invoke(cli.main, ['--version'])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_invalid_timeout_is_usage_error():
    result = CliRunner().invoke(cli.main, ['example.test', '--timeout', '0'])
    assert result.exit_code == 2


def test_unresolvable_target_exits_with_error(monkeypatch):
    def fail(hostname):
        raise ResolutionError(f"Cannot resolve hostname '{hostname}'")

    monkeypatch.setattr(cli, 'resolve_host', fail)
    result = CliRunner().invoke(cli.main, ['nowhere.invalid'])

    assert result.exit_code == 1


def test_duration_run_stops_cleanly(monkeypatch):
    transports = []
    monkeypatch.setattr(cli, 'resolve_host', lambda _: DEST)
    monkeypatch.setattr(cli, 'Scanner', fake_scanner_factory(transports))

    result = CliRunner().invoke(cli.main, ['example.test', '-i', '0.05', '-d', '0.3'])

    assert result.exit_code == 0, result.output
    assert len(transports) == 1
    assert transports[0].closed
    assert transports[0].sent[0][:2] == (DEST, 1)


def test_empty_path_ends_the_run(monkeypatch):
    transports = []
    monkeypatch.setattr(cli, 'resolve_host', lambda _: DEST)
    monkeypatch.setattr(cli, 'Scanner', fake_scanner_factory(transports, script={}))

    result = CliRunner().invoke(cli.main, ['example.test', '-m', '3'])

    assert result.exit_code == 0, result.output
    assert [sent[1] for sent in transports[0].sent] == [1, 2, 3]
    assert transports[0].closed
