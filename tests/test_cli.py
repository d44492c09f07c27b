"""Unit tests for ok_linecheck.cli."""

import json
import logging
import signal

import pytest

import ok_linecheck
from ok_linecheck import cli


def test_format_event():
    assert cli.format_event(ok_linecheck.Heartbeat()) == "*"
    assert cli.format_event(ok_linecheck.Wrap()) == "\nI: Wrap(FF -> 00)\n"
    assert cli.format_event(ok_linecheck.Anomaly(0x1A)) == "\nE: 0x1A (even)\n"
    marker = ok_linecheck.Marker(ord("O"), ord("K"))
    assert cli.format_event(marker) == "\nE: OK (odd)\n"
    invalid = ok_linecheck.InvalidPair(ord("Z"), 0x00)
    assert cli.format_event(invalid) == "\nE: Z\\x00 (bad hex)\n"


@pytest.fixture
def cli_env(mocker, fake_driver):
    mocker.patch("ok_logging_setup.install")
    driver_class = mocker.patch.object(ok_linecheck, "PySerialDriver")
    driver_class.return_value = fake_driver
    fake_driver.purge = lambda handle: None  # keep preloaded input

    saved = {s: signal.getsignal(s) for s in (signal.SIGINT, signal.SIGTERM)}
    logging.disable(logging.CRITICAL)
    yield fake_driver
    logging.disable(logging.NOTSET)
    for signum, handler in saved.items():
        signal.signal(signum, handler)


def test_main_prints_events_until_timeout(cli_env, monkeypatch, capsys):
    cli_env.incoming.extend(b"01 02 05 K!?")
    monkeypatch.setattr(
        "sys.argv", ["ok_linecheck", "--port", "/dev/fake9", "--baud", "9600"]
    )
    with pytest.raises(ok_linecheck.SerialReadTimeout):
        cli.main()

    assert capsys.readouterr().out == "**\nE: 0x05 (even)\n\nE: !? (odd)\n"
    assert cli_env.configured == (
        9600,
        8,
        ok_linecheck.StopBits.TWO,
        ok_linecheck.Parity.MARK,
    )
    assert cli_env.live == set()


def test_main_json_output(cli_env, monkeypatch, capsys):
    cli_env.incoming.extend(b"FF00")
    monkeypatch.setenv("OK_LINECHECK_PARITY", "none")
    monkeypatch.setattr("sys.argv", ["ok_linecheck", "--json"])
    with pytest.raises(ok_linecheck.SerialReadTimeout):
        cli.main()

    lines = capsys.readouterr().out.splitlines()
    assert [json.loads(line) for line in lines] == [{"type": "Wrap"}]
    assert cli_env.configured[3] is ok_linecheck.Parity.NONE


def test_main_exits_cleanly_on_sigint(cli_env, monkeypatch, capsys):
    cli_env.incoming.extend(b"01")
    plain_read = cli_env.read

    def interrupted_read(handle, size):
        if not cli_env.incoming:
            signal.raise_signal(signal.SIGINT)
        return plain_read(handle, size)

    cli_env.read = interrupted_read
    monkeypatch.setattr("sys.argv", ["ok_linecheck"])
    cli.main()

    assert capsys.readouterr().out == "*"
    assert cli_env.live == set()
