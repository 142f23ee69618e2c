import asyncio
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.tree import Tree

from courses.__version__ import __version__
from courses.cli.build_reporter import BuildReporter
from courses.cli.output_formatter import OutputMode, create_output_formatter
from courses.core.content_tree import ContentNode
from courses.core.project import Project
from courses.core.project_config import DEV_PROFILE
from courses.errors import CoursesError
from courses.infrastructure.backends.local_ops_backend import LocalOpsBackend
from courses.infrastructure.config import BuildConfig, get_config

# Shared console for CLI output - uses stderr to avoid mixing with JSON output
cli_console = Console(file=sys.stderr)

logger = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def setup_logging(
    log_level_name: str, log_file: Path | None = None, console_logging: bool = False
):
    """Configure logging for a CLI run.

    Args:
        log_level_name: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: If given, log to this file with rotation
        console_logging: If True, also log to the console via Rich
    """
    log_level = logging.getLevelName(log_level_name.upper())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    # Keeps the last-resort handler from printing while no other handler is set
    root_logger.addHandler(logging.NullHandler())

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=3,
            encoding="utf-8",
        )
        file_handler.setLevel(log_level)
        file_handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root_logger.addHandler(file_handler)

    if console_logging:
        console_handler = RichHandler(
            console=cli_console,
            rich_tracebacks=True,
            show_path=False,
        )
        console_handler.setLevel(log_level)
        root_logger.addHandler(console_handler)

    root_logger.setLevel(logging.WARNING)
    logging.getLogger("courses").setLevel(log_level)


async def run_build(
    project: Project, reporter: BuildReporter, build_config: BuildConfig, clean: bool
) -> None:
    async with LocalOpsBackend() as backend:
        await project.process_all(backend, reporter, build_config, clean=clean)


@click.group()
@click.version_option(__version__, prog_name="courses")
def cli():
    """Build course websites and exercise notebooks from a content directory."""
    pass


@cli.command()
@click.argument(
    "project-dir",
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
    default=Path("."),
)
@click.option(
    "--profile",
    "-p",
    default=DEV_PROFILE,
    show_default=True,
    help="Build profile from config.yml (dev and release always exist).",
)
@click.option(
    "--jobs",
    "-j",
    type=click.IntRange(min=1),
    help="Number of documents processed concurrently (overrides settings).",
)
@click.option(
    "--clean",
    is_flag=True,
    help="Remove build/web and build/source before building.",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    help="Set the logging level (overrides settings).",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Also write log messages to this file.",
)
@click.option(
    "--verbose-logging",
    is_flag=True,
    help="Show log messages in the console.",
)
@click.option(
    "--output-mode",
    "-O",
    type=click.Choice([mode.value for mode in OutputMode], case_sensitive=False),
    default=OutputMode.DEFAULT.value,
    help="Output mode for build progress reporting.",
)
@click.option(
    "--no-progress",
    is_flag=True,
    help="Disable progress bar display.",
)
def build(
    project_dir,
    profile,
    jobs,
    clean,
    log_level,
    log_file,
    verbose_logging,
    output_mode,
    no_progress,
):
    """Build the project in PROJECT_DIR into build/web and build/source.

    Exits with 0 if every document was built, 1 if some documents failed,
    and 2 if the project could not be built at all.
    """
    settings = get_config()
    setup_logging(log_level or settings.logging.log_level, log_file, verbose_logging)
    build_config = settings.build
    if jobs is not None:
        build_config = build_config.model_copy(update={"max_workers": jobs})

    formatter = create_output_formatter(
        OutputMode(output_mode.lower()), show_progress=not no_progress
    )
    reporter = BuildReporter(formatter)

    try:
        project = Project.from_path(project_dir, profile)
    except CoursesError as e:
        logger.error(f"Cannot build {project_dir}: {e}")
        reporter.start_build(project_dir.resolve().name, profile, 0)
        reporter.report_exception(e, e.path or project_dir, fatal=True)
        summary = reporter.finish_build()
        raise SystemExit(summary.exit_code) from e

    reporter.start_build(project.name, profile, len(project.documents_to_build()))
    try:
        asyncio.run(run_build(project, reporter, build_config, clean))
    except KeyboardInterrupt:
        reporter.cleanup()
        cli_console.print("\n[yellow]Build interrupted[/yellow]")
        raise SystemExit(130) from None
    summary = reporter.finish_build()
    if summary.exit_code != 0:
        raise SystemExit(summary.exit_code)


def _tree_label(node: ContentNode) -> str:
    label = (
        f"[bold]{escape(node.title)}[/bold] "
        f"[dim]{node.kind.value} · {escape(node.relative_path.as_posix())}[/dim]"
    )
    if node.config.draft:
        label += " [yellow](draft)[/yellow]"
    return label


@cli.command(name="tree")
@click.argument(
    "project-dir",
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
    default=Path("."),
)
@click.option(
    "--assets",
    is_flag=True,
    help="Also list passthrough assets.",
)
def show_tree(project_dir, assets):
    """Show the project/part/chapter/section hierarchy of PROJECT_DIR."""
    console = Console()
    setup_logging(get_config().logging.log_level)
    try:
        project = Project.from_path(project_dir)
    except CoursesError as e:
        cli_console.print(f"[red]✗ {escape(str(e))}[/red]")
        raise SystemExit(2) from e

    content_tree = project.tree

    def add_children(branch: Tree, node: ContentNode) -> None:
        for child in content_tree.children(node):
            add_children(branch.add(_tree_label(child)), child)

    root = Tree(_tree_label(content_tree.root))
    add_children(root, content_tree.root)
    console.print(root)

    if assets and content_tree.assets:
        console.print("\n[bold]Assets:[/bold]")
        for asset in content_tree.assets:
            console.print(
                f"  {content_tree.relative_asset_path(asset).as_posix()}", markup=False
            )

    for warning in content_tree.warnings:
        cli_console.print(
            f"[yellow]⚠ {escape(str(warning.path))}: {escape(warning.message)}[/yellow]"
        )

    if content_tree.errors:
        cli_console.print("\n[bold red]Problems:[/bold red]")
        for failure in content_tree.errors:
            cli_console.print(
                f"  {escape(str(failure.path))}: [red]{failure.error.kind}[/red] "
                f"{escape(failure.error.message)}"
            )
        raise SystemExit(1)


@cli.group()
def config():
    """Manage settings files of the courses tool."""
    pass


@config.command(name="init")
@click.option(
    "--location",
    type=click.Choice(["user", "project"], case_sensitive=False),
    default="user",
    help="Where to create the settings file.",
)
@click.option(
    "--force",
    is_flag=True,
    help="Overwrite existing settings file.",
)
def config_init(location, force):
    """Create an example settings file.

    Examples:
        courses config init                     # Create user settings
        courses config init --location=project  # Create .courses/config.toml
    """
    from courses.infrastructure.config import get_config_file_locations, write_example_config

    config_path = get_config_file_locations()[location.lower()]
    if config_path.exists() and not force:
        click.echo(f"Settings file already exists at {config_path}\nUse --force to overwrite.")
        return

    try:
        created_path = write_example_config(location=location.lower())
        click.echo(f"✓ Created settings file: {created_path}")
    except OSError as e:
        click.echo(f"✗ Error creating settings file: {e}", err=True)
        raise SystemExit(1) from e


@config.command(name="show")
def config_show():
    """Show current settings, from all files and environment variables."""
    from courses.infrastructure.config import find_config_files

    cfg = get_config(reload=True)

    click.echo("Current courses settings:")
    click.echo("=" * 60)

    click.echo("\n[logging]")
    click.echo(f"  log_level: {cfg.logging.log_level}")

    click.echo("\n[build]")
    click.echo(f"  max_workers: {cfg.build.max_workers}")
    click.echo(f"  katex_executable: {cfg.build.katex_executable}")
    click.echo(f"  katex_timeout: {cfg.build.katex_timeout}")

    click.echo("\nLoaded from:")
    for location, path in find_config_files().items():
        click.echo(f"  {location}: {path or '(not found)'}")


if __name__ == "__main__":
    cli()
