#!/usr/bin/env python3

"""CLI tool to watch a serial counter stream for gaps"""

import argparse
import logging
import signal
import sys
import typing

import msgspec
import ok_logging_setup

import ok_linecheck

ok_logging_setup.skip_traceback_for(ok_linecheck.SerialException)


def main():
    settings = ok_linecheck.LinecheckSettings()

    parser = argparse.ArgumentParser(
        description="Check a serial counter stream for continuity."
    )
    parser.add_argument(
        "--port", "-p", default=settings.port, help="serial device path"
    )
    parser.add_argument(
        "--baud", "-b", type=int, default=settings.baud, help="baud rate"
    )
    parser.add_argument(
        "--data-bits", type=int, default=settings.data_bits, help="byte size"
    )
    parser.add_argument(
        "--stop-bits",
        choices=[s.value for s in ok_linecheck.StopBits],
        default=settings.stop_bits.value,
    )
    parser.add_argument(
        "--parity",
        choices=[p.value for p in ok_linecheck.Parity],
        default=settings.parity.value,
    )
    parser.add_argument(
        "--timeout-ms",
        type=int,
        default=settings.timeout_ms,
        help="read/write timeout",
    )
    parser.add_argument(
        "--sharing",
        choices=typing.get_args(ok_linecheck.SharingType),
        default=settings.sharing,
        help="how to share the port with other processes",
    )
    parser.add_argument(
        "--json", action="store_true", help="print events as JSON lines"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="debug logging"
    )

    args = parser.parse_args()
    level = "ok_linecheck=DEBUG,INFO" if args.verbose else "info"
    ok_logging_setup.install({"OK_LOGGING_LEVEL": level})

    settings = ok_linecheck.LinecheckSettings(
        port=args.port,
        baud=args.baud,
        data_bits=args.data_bits,
        stop_bits=args.stop_bits,
        parity=args.parity,
        timeout_ms=args.timeout_ms,
        sharing=args.sharing,
    )
    config = settings.to_configuration()
    driver = ok_linecheck.PySerialDriver(sharing=settings.sharing)

    with ok_linecheck.SerialTransport(config, driver) as transport:
        monitor = ok_linecheck.ContinuityMonitor(transport)
        signal.signal(signal.SIGINT, lambda *_: monitor.stop())
        signal.signal(signal.SIGTERM, lambda *_: monitor.stop())

        logging.info("👀 Watching %s (%d baud)", config.path, config.baud)
        for event in monitor:
            if args.json:
                sys.stdout.write(msgspec.json.encode(event).decode() + "\n")
            else:
                sys.stdout.write(format_event(event))
            sys.stdout.flush()

    logging.info("🛑 Stopped watching %s", config.path)


def format_event(event: ok_linecheck.Event) -> str:
    if isinstance(event, ok_linecheck.Heartbeat):
        return "*"
    elif isinstance(event, ok_linecheck.Wrap):
        return "\nI: Wrap(FF -> 00)\n"
    elif isinstance(event, ok_linecheck.Anomaly):
        return f"\nE: 0x{event.value:02X} (even)\n"
    elif isinstance(event, ok_linecheck.Marker):
        return f"\nE: {_printable(event.first, event.second)} (odd)\n"
    else:
        return f"\nE: {_printable(event.high, event.low)} (bad hex)\n"


def _printable(*values: int) -> str:
    return "".join(chr(v) if 32 <= v < 127 else f"\\x{v:02x}" for v in values)


if __name__ == "__main__":
    main()
