"""inkwell CLI entrypoint."""

from __future__ import annotations

import logging
from pathlib import Path

import click

from inkwell.engine.replace import ReplaceMode
from inkwell.renderer.html_renderer import HTMLRenderer
from inkwell.session import EditorSession, StatusMessage

_INPUT = click.Path(exists=True, dir_okay=False, path_type=Path)


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def main(verbose: bool) -> None:
    """Find/replace, footnote renumbering and import tools for editor documents."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


@main.command("import")
@click.argument("input_path", type=_INPUT)
@click.option("--output", "-o", type=click.Path(path_type=Path), required=True, help="Output markup path")
def import_command(input_path: Path, output: Path) -> None:
    """Import a PDF, HTML or text file into editor markup."""
    session = EditorSession()
    _report(session.import_file(input_path))
    _write(output, session.markup)


@main.command("find")
@click.argument("input_path", type=_INPUT)
@click.argument("pattern")
@click.option("--match-case", is_flag=True, help="Case-sensitive search")
@click.option("--whole-words", is_flag=True, help="Only match whole words")
def find_command(input_path: Path, pattern: str, match_case: bool, whole_words: bool) -> None:
    """List the matches of PATTERN (a regular expression) in a markup file."""
    session = _open(input_path)
    status = session.find(pattern, match_case=match_case, whole_words=whole_words)
    if session.search is not None:
        for idx, match in enumerate(session.search.matches, start=1):
            click.echo(f"{idx}\t{match.start}-{match.end}\t{match.text}")
    _report(status)


@main.command("replace")
@click.argument("input_path", type=_INPUT)
@click.option("--find", "pattern", required=True, help="Pattern to find (regular expression)")
@click.option("--replace", "replacement", required=True, help="Replacement text")
@click.option("--match-case", is_flag=True, help="Case-sensitive search")
@click.option("--whole-words", is_flag=True, help="Only match whole words")
@click.option(
    "--mode",
    type=click.Choice([m.value for m in ReplaceMode], case_sensitive=False),
    default=ReplaceMode.PRESERVE_STYLE.value,
    show_default=True,
    help="Keep each occurrence's style, or reapply one captured style to every replacement",
)
@click.option("--output", "-o", type=click.Path(path_type=Path), default=None, help="Output path (default: in place)")
def replace_command(
    input_path: Path,
    pattern: str,
    replacement: str,
    match_case: bool,
    whole_words: bool,
    mode: str,
    output: Path | None,
) -> None:
    """Replace every match in a markup file."""
    session = _open(input_path)
    status = session.replace_all(
        pattern,
        replacement,
        match_case=match_case,
        whole_words=whole_words,
        mode=mode.lower(),
    )
    _report(status)
    _write(output or input_path, session.markup)


@main.command("renumber")
@click.argument("input_path", type=_INPUT)
@click.option("--output", "-o", type=click.Path(path_type=Path), default=None, help="Output path (default: in place)")
def renumber_command(input_path: Path, output: Path | None) -> None:
    """Renumber footnotes 1..N and drop orphaned notes."""
    session = _open(input_path)
    click.echo(f"Next footnote number: {session.footnotes.next_number}")
    _write(output or input_path, session.markup)


@main.command("export")
@click.argument("input_path", type=_INPUT)
@click.option("--output", "-o", type=click.Path(path_type=Path), required=True, help="Output HTML path")
@click.option("--title", type=str, default=None, help="Override document title")
@click.option("--dark-mode", is_flag=True, help="Enable dark mode stylesheet")
def export_command(input_path: Path, output: Path, title: str | None, dark_mode: bool) -> None:
    """Export a markup file as a standalone HTML page."""
    session = _open(input_path)
    html = HTMLRenderer().render(session.document.blocks, title_override=title, dark_mode=dark_mode)
    _write(output, html)


def _open(input_path: Path) -> EditorSession:
    return EditorSession(input_path.read_text(encoding="utf-8", errors="ignore"))


def _write(output: Path, text: str) -> None:
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(text, encoding="utf-8")
    click.echo(f"Written: {output}")


def _report(status: StatusMessage) -> None:
    if not status.ok:
        raise click.ClickException(f"{status.title}: {status.description}")
    click.echo(f"{status.title}: {status.description}")


if __name__ == "__main__":  # pragma: no cover
    main()
