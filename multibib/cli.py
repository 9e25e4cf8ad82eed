"""multibib CLI - pandoc JSON filter entry point."""

from __future__ import annotations

import logging

import click
from rich.console import Console
from rich.logging import RichHandler

from multibib.engine import EngineError, PandocCiteproc
from multibib.pipeline import filter_json

# stdout carries the document; everything else goes to stderr
console = Console(stderr=True)

logger = logging.getLogger("multibib")


@click.command()
@click.argument("target_format", required=False)
@click.option("--pandoc", "pandoc_path", default="pandoc", envvar="MULTIBIB_PANDOC",
              show_default=True, help="pandoc executable used as the citeproc engine")
@click.option("--resource-path", default=None, envvar="MULTIBIB_RESOURCE_PATH",
              help="Search path for .bib and .csl files (passed to pandoc)")
@click.option("--renumber/--no-renumber", default=True, envvar="MULTIBIB_RENUMBER",
              help="Renumber numbered references across all bibliographies")
@click.option("--timeout", default=None, type=float, envvar="MULTIBIB_TIMEOUT",
              help="Seconds allowed for one citeproc run")
@click.option("-v", "--verbose", is_flag=True, envvar="MULTIBIB_VERBOSE",
              help="Debug logging")
@click.option("-q", "--quiet", is_flag=True, envvar="MULTIBIB_QUIET",
              help="Only log errors")
def main(
    target_format: str | None,
    pandoc_path: str,
    resource_path: str | None,
    renumber: bool,
    timeout: float | None,
    verbose: bool,
    quiet: bool,
):
    """Create multiple bibliographies, one per topic.

    Reads a pandoc JSON document on stdin and writes it back on stdout.
    Topic bibliographies come from `bibliography_<topic>` metadata and are
    placed in Divs with identifier `refs-<topic>`.

    \b
    Examples:
        pandoc paper.md --filter multibib -o paper.html
        MULTIBIB_RENUMBER=0 pandoc paper.md --filter multibib -o paper.pdf
        pandoc paper.md -t json | multibib --resource-path bib/ | pandoc -f json -o paper.docx
    """
    _setup_logging(verbose, quiet)
    if target_format:
        logger.debug("Target format: %s", target_format)

    with click.open_file("-") as stdin:
        source = stdin.read()
    if not source.strip():
        raise click.ClickException("No pandoc JSON document on stdin")

    engine = PandocCiteproc(
        pandoc_path=pandoc_path,
        resource_path=resource_path,
        timeout=timeout,
    )

    try:
        output = filter_json(source, engine, renumber_refs=renumber)
    except EngineError as e:
        raise click.ClickException(str(e))
    except ValueError as e:
        # malformed JSON or an unsupported document model version
        raise click.ClickException(f"Cannot read pandoc document: {e}")

    click.echo(output)


def _setup_logging(verbose: bool, quiet: bool) -> None:
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.ERROR
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False, show_path=False)],
        force=True,
    )


if __name__ == "__main__":
    main()
