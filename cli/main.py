"""
PPM Tool Finder CLI - Main Entry Point

Command-line interface for ranking project and portfolio management tools
against weighted criteria. Built with Click for argument parsing and help
generation.
"""

import sys
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import click
import yaml

from ppm_finder import __version__
from ppm_finder.config import FinderConfig
from ppm_finder.exceptions import ConfigError

# Configure logging for CLI
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("ppmfind")


class FinderContext:
    """Context object for passing global options to subcommands."""

    def __init__(
        self,
        verbose: bool = False,
        quiet: bool = False,
        config_path: Optional[Path] = None,
    ):
        self.verbose = verbose
        self.quiet = quiet
        self.config_path = config_path
        self.config_source: Optional[Path] = None
        self._config: Optional[FinderConfig] = None

        # Configure logging based on verbosity
        engine_logger = logging.getLogger("ppm_finder")
        if quiet:
            logger.setLevel(logging.WARNING)
            engine_logger.setLevel(logging.WARNING)
        elif verbose:
            logger.setLevel(logging.DEBUG)
            engine_logger.setLevel(logging.DEBUG)
        else:
            logger.setLevel(logging.INFO)
            engine_logger.setLevel(logging.WARNING)

    @property
    def config(self) -> FinderConfig:
        """Lazy load configuration from file."""
        if self._config is None:
            self._config = self._load_config()
        return self._config

    def _load_config(self) -> FinderConfig:
        """
        Build configuration from environment defaults and a YAML file.

        Raises:
            ConfigError: If the merged settings are invalid
        """
        config = FinderConfig.from_environment().to_dict()

        candidates = [self.config_path] if self.config_path else [
            Path.cwd() / ".ppmfind.yaml",
            Path.cwd() / "ppmfind.yaml",
            Path.home() / ".ppmfind" / "config.yaml",
        ]

        for path in candidates:
            if not path.exists():
                continue
            try:
                with open(path) as f:
                    user_config = yaml.safe_load(f)
            except (OSError, yaml.YAMLError) as e:
                logger.warning(f"Failed to load config from {path}: {e}")
                continue
            if user_config:
                if not isinstance(user_config, dict):
                    raise ConfigError("Configuration file must contain a mapping", str(path))
                self._merge_config(config, user_config.get("ppm_finder", user_config))
            self.config_source = path
            logger.debug(f"Loaded config from {path}")
            break

        return FinderConfig.from_dict(config)

    def _merge_config(self, base: Dict[str, Any], override: Dict[str, Any]):
        """Deep merge override into base config."""
        for key, value in override.items():
            if key in base and isinstance(base[key], dict) and isinstance(value, dict):
                self._merge_config(base[key], value)
            else:
                base[key] = value


# Custom Click group with enhanced help formatting
class FinderGroup(click.Group):
    """Custom Click group with improved help formatting."""

    def format_help(self, ctx, formatter):
        """Format help with custom banner and examples."""
        formatter.write_paragraph()
        formatter.write_text("PPM Tool Finder")
        formatter.write_paragraph()
        formatter.write_text(
            "Rank project management tools by how well they match your priorities."
        )
        formatter.write_paragraph()

        super().format_help(ctx, formatter)

        formatter.write_paragraph()
        formatter.write_text("Examples:")
        formatter.indent()

        examples = [
            "# Rank a catalog with custom weights",
            "ppmfind rank --catalog tools.yaml -w security=5 -w easeOfUse=2",
            "",
            "# Only agile tools rated 4+ for reporting",
            "ppmfind rank --catalog tools.yaml --tag Agile --rating 'reporting>=4'",
            "",
            "# Derive weights from questionnaire answers",
            "ppmfind guided --catalog tools.yaml --answers answers.yaml",
            "",
            "# Show the guided ranking questions",
            "ppmfind questions",
        ]

        for line in examples:
            formatter.write_text(line)

        formatter.dedent()


pass_context = click.make_pass_decorator(FinderContext, ensure=True)


@click.group(cls=FinderGroup)
@click.option(
    "-v",
    "--verbose",
    is_flag=True,
    default=False,
    help="Enable verbose output (debug logging).",
)
@click.option(
    "-q",
    "--quiet",
    is_flag=True,
    default=False,
    help="Quiet mode (only warnings and errors).",
)
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(exists=True, path_type=Path),
    help="Path to configuration file.",
)
@click.version_option(
    version=__version__,
    prog_name="ppmfind",
    message="%(prog)s version %(version)s - PPM Tool Finder CLI",
)
@click.pass_context
def app(ctx, verbose: bool, quiet: bool, config_path: Optional[Path]):
    """
    PPM Tool Finder CLI

    Weight the criteria that matter to you, filter by methodology or
    rating, and get a ranked shortlist of matching tools.
    """
    if verbose and quiet:
        raise click.UsageError("Cannot use both --verbose and --quiet")

    ctx.obj = FinderContext(
        verbose=verbose,
        quiet=quiet,
        config_path=config_path,
    )


def register_commands():
    """Register all subcommands."""
    from cli.commands import rank, guided, questions

    app.add_command(rank.rank)
    app.add_command(guided.guided)
    app.add_command(questions.questions)


@app.command("info")
@pass_context
def info(ctx):
    """Display version information and active configuration."""
    import platform
    import importlib.metadata

    click.echo("\n=== PPM Tool Finder Info ===\n")

    click.echo(f"ppm_finder: {__version__}")
    click.echo(f"Python: {platform.python_version()}")
    click.echo(f"Platform: {platform.system()} {platform.release()}")

    click.echo("\n--- Package Versions ---")
    for pkg in ["numpy", "click", "PyYAML"]:
        try:
            version = importlib.metadata.version(pkg)
            click.echo(f"  {pkg}: {version}")
        except importlib.metadata.PackageNotFoundError:
            click.echo(f"  {pkg}: not installed")

    click.echo("\n--- Configuration ---")
    try:
        config = ctx.config
    except ConfigError as e:
        raise click.ClickException(str(e))
    click.echo(f"  Source: {ctx.config_source or 'defaults'}")
    for section, values in config.to_dict().items():
        click.echo(f"  [{section}]")
        for key, value in values.items():
            click.echo(f"    {key}: {value}")

    click.echo()


register_commands()


def main():
    """Main entry point for the CLI."""
    try:
        app()
    except Exception as e:
        logger.error(f"Error: {e}")
        if "--verbose" in sys.argv or "-v" in sys.argv:
            import traceback

            traceback.print_exc()
        sys.exit(1)


if __name__ == "__main__":
    main()
