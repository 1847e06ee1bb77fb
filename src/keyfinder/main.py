from __future__ import annotations

import argparse
import sys
import time
from pathlib import Path

import dotenv

from keyfinder.const import KEYFINDER_VERSION
from keyfinder.correlation import correlation_context
from keyfinder.extractor import extract_candidates, read_image
from keyfinder.instrumentation import measure_time
from keyfinder.logging_abstraction import configure_logging, get_logger
from keyfinder.metrics import start_metrics_server
from keyfinder.protocol.exceptions import ConfigError, KeyfinderError, MalformedPacketError
from keyfinder.protocol.packet_types import decode_packet_hex, detect_packet_version
from keyfinder.search import KeyMatch, KeySearch
from keyfinder.structs import GlobalObject, KeyfinderEnv, SearchReport

EXIT_OK = 0
EXIT_NO_KEY = 1
EXIT_INPUT_ERROR = 2

RANKING_HINT = "Possible access keys (the correct key is usually one of the first):"
NOT_FOUND_MSG = (
    "No possible access keys found for provided test packet. Was the test packet sent from the provided title?"
)

logger = get_logger(__name__)
g = GlobalObject()


def parse_cli(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="keyfinder",
        description="Find the access key embedded in a title image, optionally verified against a captured packet",
    )
    _ = parser.add_argument("image", type=Path, help="Path to the title image (ROM/executable)")
    _ = parser.add_argument(
        "packet",
        nargs="?",
        default=None,
        help="Captured test packet as hex; V1 packets start with ead0",
    )
    _ = parser.add_argument("--config", type=Path, default=None, help="Path to a YAML settings file")
    _ = parser.add_argument("--env", type=Path, default=None, help="Path to the environment file")
    _ = parser.add_argument("-D", "--debug", action="store_true", help="Enable debug logging")
    _ = parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Print the result as JSON",
    )
    _ = parser.add_argument("--version", action="version", version=f"%(prog)s {KEYFINDER_VERSION}")
    g.cli_args = args = parser.parse_args(argv)
    return args


def load_settings(args: argparse.Namespace) -> KeyfinderEnv:
    """Load the .env file (if any), then resolve settings with CLI overrides.

    Raises:
        ConfigError: Missing .env file or invalid settings

    """
    if args.env:
        env_path = args.env.expanduser().resolve()
        if not env_path.exists():
            raise ConfigError("environment file not found", str(env_path))
        loaded_any = dotenv.load_dotenv(env_path, override=True)
        if not loaded_any:
            # Logging is not configured yet
            print(f"Warning: no environment variables loaded from {env_path}", file=sys.stderr)

    env = g.reload_env(args.config)
    if args.debug:
        env = env.model_copy(update={"debug": True})
        g.env = env
    return env


def format_report(report: SearchReport) -> str:
    """Render a report the way the CLI prints it in text mode."""
    lines: list[str] = []
    if report.status == "no_candidates":
        lines.append("No possible access keys found")
    elif report.status == "listed":
        lines.append("No test packet provided")
        lines.append(RANKING_HINT)
        lines.extend(f"  {index:>3}  {key}" for index, key in enumerate(report.candidates, start=1))
    elif report.status == "found":
        lines.append(f"Found working access key: {report.key}")
    else:
        lines.append(NOT_FOUND_MSG)
    lines.append(f"Parsing took: {report.elapsed_ms:.3f}ms")
    return "\n".join(lines)


def _emit(report: SearchReport, json_output: bool) -> None:
    if json_output:
        print(report.model_dump_json(indent=2))
    else:
        print(format_report(report))


def run(args: argparse.Namespace) -> int:
    """Extract candidates from the image and, if a packet was given, search it.

    Raises:
        KeyfinderError: Unreadable image, bad packet hex or malformed packet

    """
    start_time = time.perf_counter()
    image_name = str(args.image)

    logger.info("Parsing title image for access keys", extra={"image": image_name})
    candidates = extract_candidates(read_image(args.image))

    if not candidates:
        report = SearchReport(image=image_name, status="no_candidates", elapsed_ms=measure_time(start_time))
        _emit(report, args.json_output)
        return EXIT_NO_KEY

    if args.packet is None:
        report = SearchReport(
            image=image_name,
            status="listed",
            candidates=candidates,
            elapsed_ms=measure_time(start_time),
        )
        _emit(report, args.json_output)
        return EXIT_OK

    packet = decode_packet_hex(args.packet)
    version = detect_packet_version(packet)
    result = KeySearch().search(candidates, packet)

    if isinstance(result, KeyMatch):
        report = SearchReport(
            image=image_name,
            status="found",
            candidates=candidates,
            packet_version=version.name,
            key=result.key,
            attempts=result.attempts,
            elapsed_ms=measure_time(start_time),
        )
        exit_code = EXIT_OK
    else:
        report = SearchReport(
            image=image_name,
            status="not_found",
            candidates=candidates,
            packet_version=version.name,
            attempts=result.attempts,
            elapsed_ms=measure_time(start_time),
        )
        exit_code = EXIT_NO_KEY

    _emit(report, args.json_output)
    return exit_code


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the keyfinder CLI."""
    args = parse_cli(argv)

    with correlation_context():
        try:
            env = load_settings(args)
        except ConfigError as e:
            configure_logging()
            logger.error("Failed to load settings: %s", e.reason, extra={"source": e.source})
            return EXIT_INPUT_ERROR

        configure_logging(env)
        logger.debug("Starting keyfinder", extra={"version": KEYFINDER_VERSION})

        if env.metrics_enabled:
            start_metrics_server(env.metrics_port)
            logger.info("Metrics server started", extra={"port": env.metrics_port})

        try:
            return run(args)
        except MalformedPacketError as e:
            logger.error(
                "Malformed test packet: %s",
                e.reason,
                extra={"version": e.version, "preview": e.data_preview.hex(" ")},
            )
        except KeyfinderError as e:
            logger.error("%s", e)
        return EXIT_INPUT_ERROR


if __name__ == "__main__":
    sys.exit(main())
