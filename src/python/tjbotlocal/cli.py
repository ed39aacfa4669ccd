"""CLI entrypoint for TJBot local keyword listening."""

from __future__ import annotations

import argparse
import logging
import sys
import threading

import yaml

from .config import Configuration
from .decoder import create_decoder
from .gate import WakeWordGate
from .log import get_logger
from .microphone import list_input_devices, open_microphone


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="TJBot local wake-word listening",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument("-c", "--config", metavar="FILE", help="YAML configuration file")
    parser.add_argument("-n", "--name", help="Robot name used as the wake word")
    parser.add_argument("-d", "--device", help="Microphone device id (e.g. plughw:1,0)")
    parser.add_argument("--log-level", help="error, warn, info, verbose, debug or silly")

    sub = parser.add_subparsers(dest="command")
    sub.add_parser("config", help="Print the effective configuration")
    sub.add_parser("devices", help="List microphone devices")
    spot = sub.add_parser("spot", help="Listen for the wake word until interrupted")
    spot.add_argument(
        "--once", action="store_true", help="Exit after the first detection"
    )

    return parser


def load_configuration(args: argparse.Namespace) -> Configuration:
    """Build the configuration from --config plus command-line overrides."""
    base = Configuration.from_file(args.config) if args.config else Configuration()
    data = base.to_dict()
    # Command-line values replace single keys, not whole sections.
    if args.name:
        data["robot"] = {**data.get("robot", {}), "name": args.name}
    if args.device:
        data["listen"] = {**data.get("listen", {}), "microphoneDeviceId": args.device}
    if args.log_level:
        data["log"] = {**data.get("log", {}), "level": args.log_level}
    return Configuration(data)


def spot(configuration: Configuration, once: bool = False) -> int:
    """Run the wake-word gate alone, printing each detection."""
    logging.basicConfig(format="%(levelname)s %(name)s: %(message)s")
    log = get_logger("tjbotlocal.spot", configuration.log_level)

    detected = threading.Event()

    def on_keyword(hypothesis: str) -> None:
        print(f"Heard {gate.wake_word}: {hypothesis}")

    def on_handoff() -> None:
        detected.set()

    gate = WakeWordGate(
        wake_word=configuration.wake_word,
        decoder=create_decoder(configuration),
        microphone_factory=lambda: open_microphone(configuration),
        on_keyword=on_keyword,
        on_handoff=on_handoff,
        log=log,
    )

    print(f"Listening for {gate.wake_word} (Ctrl-C to stop)")
    try:
        while True:
            detected.clear()
            gate.start()
            detected.wait()
            if once:
                break
    except KeyboardInterrupt:
        pass
    finally:
        gate.reset()
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "config":
        configuration = load_configuration(args)
        print(yaml.safe_dump(configuration.to_dict(), sort_keys=False), end="")

    elif args.command == "devices":
        devices = list_input_devices()
        if devices:
            for index, name in devices:
                print(f"  {index}: {name}")
        else:
            print("No microphone devices found.")
            return 1

    elif args.command == "spot":
        return spot(load_configuration(args), once=args.once)

    else:
        parser.print_help()

    return 0


if __name__ == "__main__":
    sys.exit(main())
