from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .models import SettingsError
from .pipeline import BuildContext, BuildPipeline, StepFailed
from .settings import load_settings
from .utils import dump_json, format_command

logger = logging.getLogger(__name__)

SETTINGS_ERROR_EXIT = 2


def _load_pipeline(args: argparse.Namespace) -> BuildPipeline:
    overrides = {"remove_image": True if args.remove_image else None}
    settings = load_settings(args.config, overrides)
    context = BuildContext(
        settings=settings,
        workdir=Path(args.context),
        output_root=Path(args.output_root) if args.output_root else None,
    )
    return BuildPipeline(context)


def cmd_build(args: argparse.Namespace) -> None:
    pipeline = _load_pipeline(args)
    try:
        pipeline.run()
    finally:
        # Partial record on failure, including the failed step.
        payload = [result.to_dict() for result in pipeline.results]
        if args.summary:
            dump_json(args.summary, payload)
        print(json.dumps(payload, indent=2))


def cmd_describe(args: argparse.Namespace) -> None:
    pipeline = _load_pipeline(args)
    print(pipeline.describe())


def cmd_clean(args: argparse.Namespace) -> None:
    pipeline = _load_pipeline(args)
    pipeline.clean()
    print(json.dumps([result.to_dict() for result in pipeline.results], indent=2))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="connector-build",
        description="Build the connector inside a container and extract its output.",
    )
    parser.add_argument("--config", default=None, help="Optional settings file (JSON, YAML or TOML).")
    parser.add_argument(
        "--context",
        default=".",
        help="Repository directory used for git metadata and the docker build (default: cwd).",
    )
    parser.add_argument(
        "--output-root",
        default=None,
        help="Directory receiving the extracted output directory (default: the context directory).",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    parser.set_defaults(func=cmd_build, summary=None, remove_image=False)

    subparsers = parser.add_subparsers(dest="command")

    build_parser_ = subparsers.add_parser("build", help="Build the image and extract its output (default)")
    build_parser_.add_argument("--summary", default=None, help="Also write the step summary JSON to this path.")
    build_parser_.add_argument(
        "--remove-image",
        action="store_true",
        help="Remove the built image after extraction.",
    )
    build_parser_.set_defaults(func=cmd_build)

    describe_parser = subparsers.add_parser("describe", help="Print the version descriptor")
    describe_parser.set_defaults(func=cmd_describe)

    clean_parser = subparsers.add_parser("clean", help="Remove a leftover throwaway container")
    clean_parser.set_defaults(func=cmd_clean)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        args.func(args)
    except SettingsError as exc:
        logger.error("%s", exc)
        return SETTINGS_ERROR_EXIT
    except StepFailed as exc:
        cause = exc.cause
        command = getattr(cause, "command", None)
        if command:
            logger.error("Step %s failed: %s exited with %d", exc.step.value, format_command(command), exc.returncode)
            for stream in (getattr(cause, "stdout", ""), getattr(cause, "stderr", "")):
                if stream and stream.strip():
                    logger.error("%s", stream.rstrip())
        else:
            logger.error("Step %s failed: %s", exc.step.value, cause)
        return exc.returncode
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
