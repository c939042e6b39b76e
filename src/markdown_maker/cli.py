"""CLI entry point for the ``maker`` command."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from . import __version__
from .build.orchestrator import BuildOutcome, run_build
from .clean import run_clean
from .core.logging import configure_logger
from .errors import ResourceLoadError
from .export import run_export
from .jobs import (
    BUILD_TASKS,
    JobPlan,
    Selection,
    create_build_jobs,
    create_clean_jobs,
    create_export_jobs,
    parse_page_range,
)
from .resources import EXPORT_KINDS, ResourceModel, load_resources
from .settings import (
    ConfigOverrides,
    MakerConfig,
    MakerConfigError,
    load_config,
)
from .translation import TranslationCache
from .watch import Watcher

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="maker",
        description=(
            "Build markdown projects into HTML with their formats, then "
            "export PDF, PNG, JPG, or ZIP artifacts."
        ),
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    build = subparsers.add_parser(
        "build", help="Compile and deploy your project files."
    )
    _add_selection_arguments(build)
    _add_build_arguments(build)
    build.add_argument(
        "--clean",
        action="store_true",
        help="Delete previously built content before building.",
    )
    build.add_argument(
        "--watch",
        action="store_true",
        help="Keep watching for changes after the build.",
    )
    _add_interval_argument(build)
    _add_common_arguments(build)

    clean = subparsers.add_parser("clean", help="Delete built content.")
    _add_selection_arguments(clean)
    _add_common_arguments(clean)

    watch = subparsers.add_parser(
        "watch", help="Watch source folders and rebuild on change."
    )
    _add_selection_arguments(watch)
    _add_build_arguments(watch)
    _add_interval_argument(watch)
    _add_common_arguments(watch)

    export = subparsers.add_parser(
        "export", help="Export built HTML as pdfs/pngs/jpgs/zips."
    )
    _add_selection_arguments(export)
    export.add_argument(
        "--files",
        nargs="+",
        help="HTML files to render (all files when omitted).",
    )
    export.add_argument(
        "--export",
        required=True,
        choices=EXPORT_KINDS,
        help="Export type.",
    )
    export.add_argument(
        "--pages",
        help="Page ranges to render, e.g. 1-3,5.",
    )
    _add_common_arguments(export)

    check = subparsers.add_parser(
        "check",
        help="Check that the configuration and resources load correctly.",
    )
    _add_common_arguments(check)
    return parser


def _add_selection_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--projects", nargs="+", help="Project names.")
    parser.add_argument("--formats", nargs="+", help="Format names.")


def _add_build_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--languages", nargs="+", help="Language codes.")
    parser.add_argument(
        "--tasks",
        nargs="+",
        choices=BUILD_TASKS,
        help="Tasks to perform (all when omitted).",
    )
    parser.add_argument(
        "--files", nargs="+", help="File names or glob patterns to build."
    )
    kinds = parser.add_mutually_exclusive_group()
    kinds.add_argument(
        "--fragments",
        action="store_true",
        help="Build fragments only, not collections.",
    )
    kinds.add_argument(
        "--collections",
        action="store_true",
        help="Build collections only, not fragments.",
    )


def _add_interval_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--interval",
        type=float,
        default=1.0,
        help="Seconds between polls of the source folders (default: 1).",
    )


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--config",
        type=Path,
        help="Path to maker.toml (defaults to ./maker.toml).",
    )
    parser.add_argument(
        "--build-dir",
        type=Path,
        help="Override output.build (relative to the working directory).",
    )
    parser.add_argument(
        "--export-dir",
        type=Path,
        help="Override output.export (relative to the working directory).",
    )
    parser.add_argument(
        "--log-level",
        help="Override logging.level, e.g. DEBUG or WARNING.",
    )
    parser.add_argument(
        "--log-dir",
        type=Path,
        help="Override logging.dir for the JSON log file.",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Show debug information."
    )
    parser.add_argument(
        "--discrete",
        action="store_true",
        help="Plain log output without colours.",
    )


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(list(argv) if argv is not None else None)

    pages = getattr(args, "pages", None)
    if pages:
        try:
            parse_page_range(pages)
        except ValueError as exc:
            parser.error(str(exc))

    overrides = ConfigOverrides(
        build_dir=args.build_dir,
        export_dir=args.export_dir,
        log_level=args.log_level,
        log_dir=args.log_dir,
    )
    try:
        config = load_config(config_path=args.config, overrides=overrides)
    except MakerConfigError as exc:
        sys.stderr.write(f"{exc}\n")
        return EXIT_CONFIG

    logger, _ = configure_logger(
        log_dir=config.log_dir,
        level=config.log_level,
        debug=args.debug,
        discrete=args.discrete,
    )
    logger.debug("maker CLI invoked", extra={"command": args.command})

    try:
        model = load_resources(
            config.format_paths,
            config.project_paths,
            host_version=__version__,
        )
    except ResourceLoadError as exc:
        for error in exc.errors:
            logger.error(str(error))
        logger.warning(f"Program failed with {len(exc.errors)} error(s)")
        return EXIT_CONFIG

    _post_loaded(logger, model)
    selection = _selection_from_args(args)
    handler = _HANDLERS[args.command]
    return handler(logger, config, model, selection, args)


def _run_build(
    logger: logging.Logger,
    config: MakerConfig,
    model: ResourceModel,
    selection: Selection,
    args: argparse.Namespace,
) -> int:
    plan = create_build_jobs(model, selection, config.roots)
    _post_start(logger, args, plan)
    if args.clean:
        run_clean(create_clean_jobs(model, selection, config.roots).jobs)
    translations = TranslationCache()
    outcome = asyncio.run(run_build(plan.jobs, translations=translations))
    status = _post_summary(logger, outcome)
    if args.watch:
        _watch(logger, plan, translations, interval=args.interval)
    return status


def _run_clean(
    logger: logging.Logger,
    config: MakerConfig,
    model: ResourceModel,
    selection: Selection,
    args: argparse.Namespace,
) -> int:
    plan = create_clean_jobs(model, selection, config.roots)
    _post_start(logger, args, plan)
    try:
        run_clean(plan.jobs)
    except OSError as exc:
        logger.error(str(exc))
        return _post_summary(
            logger, BuildOutcome(job_count=len(plan), failures=(exc,))
        )
    return _post_summary(logger, BuildOutcome(job_count=len(plan)))


def _run_watch(
    logger: logging.Logger,
    config: MakerConfig,
    model: ResourceModel,
    selection: Selection,
    args: argparse.Namespace,
) -> int:
    plan = create_build_jobs(model, selection, config.roots)
    _post_start(logger, args, plan)
    return _watch(logger, plan, TranslationCache(), interval=args.interval)


def _run_export(
    logger: logging.Logger,
    config: MakerConfig,
    model: ResourceModel,
    selection: Selection,
    args: argparse.Namespace,
) -> int:
    plan = create_export_jobs(model, selection, config.roots)
    _post_start(logger, args, plan)
    outcome = asyncio.run(run_export(plan.jobs))
    return _post_summary(logger, outcome)


def _run_check(
    logger: logging.Logger,
    config: MakerConfig,
    model: ResourceModel,
    selection: Selection,
    args: argparse.Namespace,
) -> int:
    logger.info("Set up is correct")
    return EXIT_OK


_HANDLERS = {
    "build": _run_build,
    "clean": _run_clean,
    "watch": _run_watch,
    "export": _run_export,
    "check": _run_check,
}


def _watch(
    logger: logging.Logger,
    plan: JobPlan,
    translations: TranslationCache,
    *,
    interval: float,
) -> int:
    if not plan.jobs:
        return _post_summary(logger, BuildOutcome(job_count=0))
    watcher = Watcher(plan.jobs, translations=translations, interval=interval)
    try:
        asyncio.run(watcher.run())
    except KeyboardInterrupt:
        logger.info("Stopped watching")
    return EXIT_OK


def _selection_from_args(args: argparse.Namespace) -> Selection:
    return Selection(
        projects=getattr(args, "projects", None),
        formats=getattr(args, "formats", None),
        tasks=getattr(args, "tasks", None),
        languages=getattr(args, "languages", None),
        files=getattr(args, "files", None),
        fragments_only=getattr(args, "fragments", False),
        collections_only=getattr(args, "collections", False),
        export_kind=getattr(args, "export", None),
        pages=getattr(args, "pages", None),
        debug=args.debug,
        discrete=args.discrete,
    )


def _post_loaded(logger: logging.Logger, model: ResourceModel) -> None:
    logger.info(f"Loaded MarkdownMaker v{__version__}")
    formats = ", ".join(f"{fmt.name} v{fmt.version}" for fmt in model.formats)
    projects = ", ".join(
        f"{project.name} v{project.version}" for project in model.projects
    )
    logger.info(
        f"Loaded {len(model.formats)} format(s)"
        + (f": {formats}" if formats else "")
    )
    logger.info(
        f"Loaded {len(model.projects)} project(s)"
        + (f": {projects}" if projects else "")
    )


def _post_start(
    logger: logging.Logger, args: argparse.Namespace, plan: JobPlan
) -> None:
    logger.info(f"Running program: {args.command}")
    logger.info(f"Number of jobs: {len(plan)}")


def _post_summary(
    logger: logging.Logger, outcome: Optional[BuildOutcome]
) -> int:
    if outcome is not None and outcome.failed:
        logger.warning(
            f"Program failed with {len(outcome.failures)} error(s)"
        )
        return EXIT_FAILED
    if outcome is None or outcome.job_count == 0:
        logger.info("Program did zero work")
    else:
        logger.info("Program is complete")
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - module CLI guard
    raise SystemExit(main())
