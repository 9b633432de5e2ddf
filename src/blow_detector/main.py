"""Blow detector CLI - listens to the microphone and reports every blow."""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional, Sequence

from blow_detector.config.settings import BlowDetectorConfig, create_example_env_file, load_config, setup_logging
from blow_detector.core.detector import BlowDetector
from blow_detector.core.events import SessionState


async def run(config: BlowDetectorConfig) -> int:
    blows = 0

    def on_blow():
        nonlocal blows
        blows += 1
        print(f"Blow #{blows}")

    detector = BlowDetector(on_blow, config)
    try:
        pending = detector.enable()
        if pending is not None:
            await pending

        if detector.state is SessionState.DENIED:
            print("Microphone access denied.")
            print("Check your input device; run with --list-devices to see the options.")
            return 1

        print("Listening... blow into the microphone (Ctrl+C to stop).")
        while detector.state is SessionState.ACTIVE:
            await asyncio.sleep(0.1)

        print("Audio stream ended.")
        return 1
    finally:
        detector.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Detect blowing into the microphone")
    parser.add_argument("--config", type=str, help="Path to config file", default=".env")
    parser.add_argument("--sensitivity", type=float, help="Override sensitivity, in (0, 1]")
    parser.add_argument("--device", type=int, help="Input device index")
    parser.add_argument("--list-devices", action="store_true", help="List input devices and exit")
    parser.add_argument("--create-config", action="store_true", help="Create example config file")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.create_config:
        create_example_env_file()
        print("Example configuration file created at .env.example")
        print("Copy it to .env and adjust the values.")
        return 0

    if args.list_devices:
        from blow_detector.audio.input.mic import list_input_devices
        for idx, name in list_input_devices():
            print(f"  {idx}: {name}")
        return 0

    overrides = {}
    if args.sensitivity is not None:
        overrides["sensitivity"] = args.sensitivity
    if args.device is not None:
        overrides["input_device"] = args.device
    if args.verbose:
        overrides["log_level"] = "DEBUG"

    try:
        config = load_config(Path(args.config))
        if overrides:
            config = BlowDetectorConfig(**{**config.model_dump(), **overrides})
    except ValueError as e:
        print(f"Configuration error: {e}")
        return 2

    setup_logging(config.log_level)

    try:
        return asyncio.run(run(config))
    except KeyboardInterrupt:
        print("\nGoodbye!")
        return 0


if __name__ == "__main__":
    sys.exit(main())
