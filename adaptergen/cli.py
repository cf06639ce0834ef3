"""CLI entrypoints for adaptergen commands."""

from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime
from pathlib import Path

from .backends import discover_backends
from .config import ConfigError, load_config
from .driver import ALL_PLATFORMS, AdapterStatus, EmissionDriver, NoViewModelsError
from .logging import configure_logging, get_logger
from .metadata_loader import MetadataError, load_view_models
from .stats import collect_attribute_usage, log_attribute_usage
from .translator import TypeTranslator


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_metadata_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "metadata",
        help="Path to the view-model metadata document (YAML or JSON).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="adaptergen",
        description="Generate Kotlin and Swift reactive adapters from view-model metadata.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--log-file",
        default=None,
        help="Also write logs to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    generate_parser = subparsers.add_parser(
        "generate",
        help="Generate adapters for every view-model in a metadata document.",
    )
    _add_verbose_option(generate_parser, suppress_default=True)
    _add_metadata_argument(generate_parser)
    generate_parser.add_argument(
        "-p",
        "--platform",
        action="append",
        default=None,
        help="Target platform: android, ios or both (repeatable; defaults to config or both).",
    )
    generate_parser.add_argument(
        "-o",
        "--output",
        default=None,
        help="Output root directory (platform directories are created beneath it).",
    )
    generate_parser.add_argument(
        "-c",
        "--config",
        default=None,
        help="Path to .adaptergen.yml or its directory (defaults to the current directory).",
    )
    generate_parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Number of worker threads used for generation.",
    )
    generate_parser.add_argument(
        "--timestamp",
        default=None,
        help="ISO-8601 generation timestamp to embed (defaults to SOURCE_DATE_EPOCH or now).",
    )
    generate_parser.add_argument(
        "--summary-json",
        default=None,
        help="Write the run summary as JSON to this path.",
    )
    generate_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Render adapters without writing any files.",
    )

    stats_parser = subparsers.add_parser(
        "stats",
        help="Report behavior attribute usage in a metadata document.",
    )
    _add_verbose_option(stats_parser, suppress_default=True)
    _add_metadata_argument(stats_parser)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for adaptergen commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    log_file = Path(args.log_file) if args.log_file else None
    configure_logging(verbose=bool(args.verbose), log_file=log_file)

    if args.command == "generate":
        _run_generate(parser, args)
    elif args.command == "stats":
        _run_stats(parser, args)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _run_generate(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    timestamp = None
    if args.timestamp:
        try:
            timestamp = datetime.fromisoformat(args.timestamp)
        except ValueError:
            parser.error(f"invalid --timestamp value: {args.timestamp}")

    try:
        config = load_config(Path(args.config) if args.config else Path.cwd())
    except ConfigError as exc:
        parser.exit(1, f"{exc}\n")

    try:
        view_models = load_view_models(Path(args.metadata))
    except (FileNotFoundError, MetadataError) as exc:
        parser.exit(1, f"{exc}\n")

    platforms = args.platform or config.platforms or [ALL_PLATFORMS]
    output_root = Path(args.output) if args.output else (config.output_root or Path.cwd() / "generated")
    workers = args.workers if args.workers is not None else (config.workers or 1)

    try:
        translator = TypeTranslator(config.namespace_remap)
        backends = discover_backends(
            translator=translator,
            templates_dir=config.templates_dir,
            timestamp=timestamp,
            output_dirs=config.output_dirs,
            package_name=config.android.package,
        )
        driver = EmissionDriver(output_root, backends, workers=workers, dry_run=bool(args.dry_run))
        summary = driver.run(view_models, platforms)
    except NoViewModelsError as exc:
        parser.exit(1, f"{exc}\n")
    except ValueError as exc:
        parser.exit(1, f"{exc}\n")
    except RuntimeError as exc:
        parser.exit(1, f"adaptergen generate failed: {exc}\nRun with --verbose for more details.\n")

    if args.summary_json:
        summary_path = Path(args.summary_json)
        summary_path.parent.mkdir(parents=True, exist_ok=True)
        summary_path.write_text(json.dumps(summary.to_dict(), indent=2) + "\n", encoding="utf-8")

    counts = ", ".join(f"{name}: {count}" for name, count in summary.generated.items())
    suffix = " (dry-run)" if summary.dry_run else ""
    print(f"Generated adapters for {summary.total_view_models} view-model(s) ({counts}){suffix}")
    print(
        f"{summary.count(AdapterStatus.CLEAN)} clean, "
        f"{summary.count(AdapterStatus.DIAGNOSTICS)} with diagnostics, "
        f"{len(summary.failures)} failed"
    )
    if summary.has_failures:
        names = ", ".join(f"{outcome.view_model} [{outcome.platform.value}]" for outcome in summary.failures)
        parser.exit(1, f"Adapter generation failed for: {names}\n")


def _run_stats(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    try:
        view_models = load_view_models(Path(args.metadata))
    except (FileNotFoundError, MetadataError) as exc:
        parser.exit(1, f"{exc}\n")
    usage = collect_attribute_usage(view_models)
    log_attribute_usage(usage, get_logger("cli"))
    print(json.dumps(usage.to_dict(), indent=2))


if __name__ == "__main__":
    main(sys.argv[1:])
