"""
Command-line interface for the weather telemetry demo.

Provides commands for:
- Serving the weather API with the background trace loop
- Generating background traces once (no server) and flushing them
- Printing resolved configuration
"""

import argparse
import asyncio
import dataclasses
import logging
import random
import sys

from . import __version__
from .background_service import BackgroundTraceLoop
from .config import EXPORTER_CHOICES, PROTOCOL_CHOICES, Settings, load_settings
from .generators.background_generators import BackgroundTraceGenerator
from .telemetry import Telemetry, build_exporters, configure_telemetry


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="weather-telemetry",
        description="Demo weather API and background loop emitting OpenTelemetry spans and logs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Serve the API on port 8000, spans printed to the console
  weather-telemetry serve --port 8000

  # Serve and ship spans/logs to an OTLP collector
  weather-telemetry --exporter otlp --endpoint http://localhost:4318 serve

  # Run three background iterations into a JSONL file
  weather-telemetry --exporter file --output-file traces.jsonl generate --count 3
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--exporter",
        choices=EXPORTER_CHOICES,
        default=None,
        help="Telemetry sink (default: from config, usually console)",
    )
    parser.add_argument(
        "--endpoint",
        type=str,
        default=None,
        help="OTLP endpoint (default: from config, http://localhost:4318)",
    )
    parser.add_argument(
        "--protocol",
        choices=PROTOCOL_CHOICES,
        default=None,
        help="OTLP protocol (default: http)",
    )
    parser.add_argument(
        "--output-file",
        type=str,
        default=None,
        help="Span output path when --exporter=file",
    )
    parser.add_argument(
        "--service-name",
        type=str,
        default=None,
        help="service.name resource attribute",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Console log level (default: INFO or LOG_LEVEL)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    serve_parser = subparsers.add_parser("serve", help="Serve the weather API")
    serve_parser.add_argument("--host", type=str, default="0.0.0.0", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port (default: 8000)")
    serve_parser.add_argument(
        "--no-background",
        action="store_true",
        help="Do not start the background trace loop",
    )
    serve_parser.add_argument(
        "--show-spans",
        action="store_true",
        help="Print every finished span to the terminal",
    )

    generate_parser = subparsers.add_parser(
        "generate", help="Run background trace iterations once, without the server"
    )
    generate_parser.add_argument(
        "--count",
        type=int,
        default=1,
        help="Number of background iterations (default: 1)",
    )
    generate_parser.add_argument(
        "--interval-ms",
        type=float,
        default=0,
        help="Pause between iterations in ms (default: 0)",
    )
    generate_parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducible output",
    )
    generate_parser.add_argument(
        "--show-spans",
        action="store_true",
        help="Print every finished span to the terminal",
    )

    subparsers.add_parser("config", help="Print resolved configuration")

    return parser


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    """Command-line flags win over config file and environment."""
    overrides = {}
    for flag, setting in (
        ("exporter", "exporter"),
        ("endpoint", "endpoint"),
        ("protocol", "protocol"),
        ("output_file", "output_file"),
        ("service_name", "service_name"),
    ):
        value = getattr(args, flag, None)
        if value is not None:
            overrides[setting] = value
    if getattr(args, "log_level", None):
        overrides["log_level"] = args.log_level.upper()
    if getattr(args, "no_background", False):
        overrides["background_enabled"] = False
    return dataclasses.replace(settings, **overrides) if overrides else settings


def _setup_telemetry(settings: Settings, show_spans: bool) -> Telemetry:
    span_exporter, log_exporter = build_exporters(settings)
    return configure_telemetry(
        settings,
        span_exporter=span_exporter,
        log_exporter=log_exporter,
        show_spans=show_spans,
    )


def cmd_serve(settings: Settings, args: argparse.Namespace):
    """Serve the API under uvicorn."""
    import uvicorn

    from .app import create_app

    print("Starting weather telemetry demo...")
    print(f"   Environment: {settings.environment}")
    print(f"   Exporter: {settings.exporter}")
    print(f"   Background loop: {'on' if settings.background_enabled else 'off'}")
    print()

    telemetry = _setup_telemetry(settings, args.show_spans)
    try:
        app = create_app(settings, telemetry)
        uvicorn.run(app, host=args.host, port=args.port, log_level=settings.log_level.lower())
    finally:
        telemetry.shutdown()


async def _generate(loop: BackgroundTraceLoop, count: int, interval_ms: float) -> None:
    for i in range(count):
        try:
            await loop.run_iteration()
        except Exception:
            logging.getLogger(__name__).exception("Background iteration %d failed", i + 1)
        if interval_ms > 0 and i < count - 1:
            await asyncio.sleep(interval_ms / 1000.0)


def cmd_generate(settings: Settings, args: argparse.Namespace):
    """Run background iterations once and flush exporters."""
    if args.count < 1:
        print("Error: --count must be at least 1")
        sys.exit(1)

    print("Generating background traces...")
    print(f"   Count: {args.count}")
    print(f"   Exporter: {settings.exporter}")
    if settings.exporter == "file":
        print(f"   Output: {settings.output_file}")
    print()

    telemetry = _setup_telemetry(settings, args.show_spans)
    rng = random.Random(args.seed)
    loop = BackgroundTraceLoop(
        telemetry.tracer,
        BackgroundTraceGenerator(telemetry.tracer, rng=rng),
        interval_seconds=settings.loop_interval_seconds,
        error_backoff_seconds=settings.error_backoff_seconds,
    )
    try:
        asyncio.run(_generate(loop, args.count, args.interval_ms))
    except KeyboardInterrupt:
        print("\nGeneration interrupted")
    finally:
        telemetry.shutdown()
    print(f"Done: {loop.iterations} iteration(s)")


def cmd_config(settings: Settings, args: argparse.Namespace):
    """Print resolved settings."""
    for key, value in settings.as_dict().items():
        print(f"  {key}: {value}")


def main(argv: list[str] | None = None):
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    try:
        settings = apply_overrides(load_settings(), args)
    except ValueError as e:
        print(f"Configuration error: {e}")
        sys.exit(1)

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.command == "serve":
        cmd_serve(settings, args)
    elif args.command == "generate":
        cmd_generate(settings, args)
    elif args.command == "config":
        cmd_config(settings, args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
