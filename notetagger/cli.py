"""
CLI interface for notetagger.

Usage:
    notetagger init ~/vault --model llama3.2 --tags "work, personal, ideas"
    notetagger tag ~/vault
    notetagger untag ~/vault --folder journal
    notetagger tag-file ~/vault notes/today.md
"""

import logging
import os
import signal
import time
from dataclasses import asdict
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from . import frontmatter
from .annotator import (
    ALREADY_TAGGED,
    ANNOTATED,
    CHANGED,
    FAILED,
    NOT_TAGGED,
    STRIPPED,
    DocumentAnnotator,
    Outcome,
)
from .autotag import AutoTagQueue, VaultWatcher
from .batch import BatchController, BatchReport, Progress
from .config import (
    TaggerConfig,
    load_or_create_config,
    parse_patterns,
    parse_vocabulary,
    resolve_config_dir,
    save_config,
    validate_for_tagging,
    validate_tag_bounds,
)
from .errors import ConfigurationError, TransportError, log_exception
from .logging_config import configure_ops_log, configure_quiet_mode, enable_debug_mode
from .providers.ollama import OllamaGenerator
from .state import STATE_FILENAME, SqliteTaggedStore
from .storage import VaultStorage, folder_files


# Quiet by default; NOTETAGGER_VERBOSE=1 enables debug output
if os.environ.get("NOTETAGGER_VERBOSE") == "1":
    enable_debug_mode()
else:
    configure_quiet_mode(quiet=True)


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


app = typer.Typer(
    name="notetagger",
    help="Tag and summarize markdown notes with a local language model.",
    no_args_is_help=True,
    rich_markup_mode=None,
)


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v",
        help="Enable debug-level logging to stderr",
        callback=_verbose_callback,
        is_eager=True,
    )] = False,
    config_dir: Annotated[Optional[Path], typer.Option(
        "--config-dir", "-c",
        envvar="NOTETAGGER_HOME",
        help="Directory holding notetagger.toml and tagging state",
    )] = None,
):
    """Tag and summarize markdown notes with a local language model."""
    ctx.obj = {"config_dir": config_dir}


VaultArg = Annotated[Path, typer.Argument(help="Path to the vault (a directory of markdown notes)")]
FolderOption = Annotated[Optional[str], typer.Option(
    "--folder", "-f",
    help="Only process notes directly inside this vault-relative folder",
)]


class _Session:
    """Everything a command needs for one vault."""

    def __init__(self, vault: Path, config_dir: Optional[Path] = None):
        self.storage = VaultStorage(vault)
        self.config_dir = resolve_config_dir(self.storage.root, config_dir)
        self.config = load_or_create_config(self.config_dir)
        self.ops_handler = configure_ops_log(self.config_dir)
        self.tagged = SqliteTaggedStore(self.config_dir / STATE_FILENAME)
        self.generator = OllamaGenerator(self.config.ollama_url)
        self.annotator = DocumentAnnotator(
            self.storage, self.generator, self.tagged, self.config,
        )

    def close(self):
        self.tagged.close()
        logging.getLogger("notetagger").removeHandler(self.ops_handler)
        self.ops_handler.close()


def _open_session(ctx: typer.Context, vault: Path) -> _Session:
    config_dir = (ctx.obj or {}).get("config_dir")
    try:
        return _Session(vault, config_dir)
    except (OSError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


def _print_progress(progress: Progress) -> None:
    typer.echo(
        f"[{progress.processed}/{progress.total}] {progress.current} "
        f"({progress.modified} modified, {progress.skipped} skipped)",
        err=True,
    )


def _run_batch(ctx: typer.Context, vault: Path, folder: Optional[str], untag: bool) -> BatchReport:
    session = _open_session(ctx, vault)
    controller = BatchController(session.annotator, on_progress=_print_progress)

    def handle_interrupt(signum, frame):
        typer.echo("\nCancelling after the current note...", err=True)
        controller.cancel()

    previous = signal.signal(signal.SIGINT, handle_interrupt)
    try:
        documents = session.storage.markdown_files()
        if folder is not None:
            documents = folder_files(documents, folder)
        typer.echo(f"Starting bulk {'untagging' if untag else 'tagging'} of {len(documents)} files...", err=True)
        report = controller.untag(documents) if untag else controller.tag(documents)
    except ConfigurationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    finally:
        signal.signal(signal.SIGINT, previous)
        session.close()

    for outcome in report.failures:
        log_exception(outcome.error, context=f"{'untag' if untag else 'tag'} {outcome.path}")
        typer.echo(f"Failed to process {outcome.path}: {outcome.error}", err=True)
    return report


@app.command()
def init(
    ctx: typer.Context,
    vault: VaultArg,
    model: Annotated[Optional[str], typer.Option("--model", "-m", help="Model name")] = None,
    tags: Annotated[Optional[str], typer.Option(
        "--tags", "-t", help="Comma-separated thematic vocabulary",
    )] = None,
    min_tags: Annotated[Optional[int], typer.Option("--min-tags", help="Minimum thematic tags")] = None,
    max_tags: Annotated[Optional[int], typer.Option("--max-tags", help="Maximum thematic tags")] = None,
    genre: Annotated[Optional[bool], typer.Option(
        "--genre/--no-genre", help="Detect literary genre",
    )] = None,
    language: Annotated[Optional[str], typer.Option("--language", "-l", help="Summary language")] = None,
    instructions: Annotated[Optional[str], typer.Option(
        "--instructions", help="Custom instructions appended to the prompt",
    )] = None,
    exclude: Annotated[Optional[list[str]], typer.Option(
        "--exclude", "-x", help="Exclusion pattern (repeatable)",
    )] = None,
    auto_tag: Annotated[Optional[bool], typer.Option(
        "--auto/--no-auto", help="Tag created and modified notes in `watch`",
    )] = None,
    ollama_url: Annotated[Optional[str], typer.Option("--ollama-url", help="Ollama server URL")] = None,
):
    """Create or update the vault's configuration."""
    session = _open_session(ctx, vault)
    try:
        config = session.config
        if model is not None:
            config.model = model or None
        if tags is not None:
            config.vocabulary = parse_vocabulary(tags)
        # Keep min <= max the way the settings sliders do
        if min_tags is not None:
            config.min_tags = min_tags
            config.max_tags = max(config.max_tags, min_tags)
        if max_tags is not None:
            config.max_tags = max_tags
            config.min_tags = min(config.min_tags, max_tags)
        if genre is not None:
            config.detect_genre = genre
        if language is not None:
            config.language = language
        if instructions is not None:
            config.custom_instructions = instructions.strip()
        if exclude is not None:
            config.exclude_patterns = parse_patterns("\n".join(exclude))
        if auto_tag is not None:
            config.auto_tag = auto_tag
        if ollama_url is not None:
            config.ollama_url = ollama_url.strip() or "http://localhost:11434"
        validate_tag_bounds(config)
        save_config(config)
    except ConfigurationError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    finally:
        session.close()
    typer.echo(f"Saved {config.config_path}")


@app.command("config")
def show_config(ctx: typer.Context, vault: VaultArg):
    """Print the effective configuration."""
    session = _open_session(ctx, vault)
    try:
        config = session.config
        tagged_count = len(session.tagged.all())
    finally:
        session.close()
    _echo_config(config)
    typer.echo(f"tagged files: {tagged_count}")


def _echo_config(config: TaggerConfig) -> None:
    for key, value in asdict(config).items():
        if key in ("path", "version", "created"):
            continue
        if isinstance(value, list):
            value = ", ".join(value)
        typer.echo(f"{key}: {value}")


@app.command()
def models(ctx: typer.Context, vault: VaultArg):
    """List the models installed on the Ollama server."""
    session = _open_session(ctx, vault)
    try:
        names = session.generator.list_models()
    except TransportError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    finally:
        session.close()
    for name in names:
        marker = "*" if name == session.config.model else " "
        typer.echo(f"{marker} {name}")


@app.command()
def tag(ctx: typer.Context, vault: VaultArg, folder: FolderOption = None):
    """Tag every note that is new or modified since its last tagging."""
    report = _run_batch(ctx, vault, folder, untag=False)
    if report.cancelled:
        typer.echo(f"Bulk tagging cancelled. Tagged {report.modified} of {report.processed} processed files.")
    else:
        typer.echo(
            f"Bulk tagging completed! Successfully tagged {report.modified} files "
            f"({report.skipped} skipped, {report.failed} failed, {report.total} total)"
        )


@app.command()
def untag(ctx: typer.Context, vault: VaultArg, folder: FolderOption = None):
    """Remove tags and summaries added by notetagger."""
    report = _run_batch(ctx, vault, folder, untag=True)
    if report.cancelled:
        typer.echo(f"Bulk untagging cancelled. Untagged {report.modified} of {report.processed} processed files.")
    else:
        typer.echo(
            f"Bulk untagging completed! Successfully untagged {report.modified} files "
            f"({report.skipped} skipped, {report.failed} failed, {report.total} total)"
        )


def _single(ctx: typer.Context, vault: Path, path: str, untag: bool) -> Outcome:
    session = _open_session(ctx, vault)
    try:
        rel = path
        candidate = Path(path).expanduser()
        if candidate.is_absolute():
            rel = session.storage.relative(candidate)
        if untag:
            return session.annotator.untag(rel)
        return session.annotator.annotate(rel)
    except (ConfigurationError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    finally:
        session.close()


@app.command("tag-file")
def tag_file(
    ctx: typer.Context,
    vault: VaultArg,
    path: Annotated[str, typer.Argument(help="Note path, relative to the vault or absolute")],
):
    """Tag a single note."""
    outcome = _single(ctx, vault, path, untag=False)
    if outcome.status == ANNOTATED:
        typer.echo(f"Successfully tagged \"{path}\": {', '.join(outcome.tags)}")
    elif outcome.status == FAILED:
        log_exception(outcome.error, context=f"tag-file {path}")
        typer.echo(f"Failed to tag \"{path}\": {outcome.error}", err=True)
        raise typer.Exit(1)
    elif outcome.reason == ALREADY_TAGGED:
        typer.echo(f"\"{path}\" is already tagged")
    elif outcome.reason == CHANGED:
        typer.echo(f"Skipped \"{path}\" - content changed during tagging")
    else:
        typer.echo(f"No tags added to \"{path}\"")


@app.command("untag-file")
def untag_file(
    ctx: typer.Context,
    vault: VaultArg,
    path: Annotated[str, typer.Argument(help="Note path, relative to the vault or absolute")],
):
    """Remove notetagger's tags from a single note."""
    outcome = _single(ctx, vault, path, untag=True)
    if outcome.status == STRIPPED:
        typer.echo(f"Successfully removed tags from \"{path}\"")
    elif outcome.status == FAILED:
        log_exception(outcome.error, context=f"untag-file {path}")
        typer.echo(f"Failed to untag \"{path}\": {outcome.error}", err=True)
        raise typer.Exit(1)
    elif outcome.reason == NOT_TAGGED:
        typer.echo(f"\"{path}\" has no LLM tags to remove")
    else:
        typer.echo(f"No changes made to \"{path}\"")


@app.command()
def show(
    ctx: typer.Context,
    vault: VaultArg,
    path: Annotated[str, typer.Argument(help="Note path, relative to the vault")],
):
    """Print the tags, tagging time and summary stored in a note."""
    session = _open_session(ctx, vault)
    try:
        fields = frontmatter.read_fields(session.storage.read(path))
    except (OSError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    finally:
        session.close()
    if frontmatter.TAGGED_KEY not in fields:
        typer.echo(f"\"{path}\" is not tagged")
        return
    tags = fields.get(frontmatter.TAGS_KEY) or []
    if not isinstance(tags, list):
        tags = [str(tags)]
    typer.echo(f"tags: {', '.join(str(t) for t in tags)}")
    typer.echo(f"tagged: {fields[frontmatter.TAGGED_KEY]}")
    typer.echo(f"summary: {fields.get(frontmatter.SUMMARY_KEY, '')}")


@app.command()
def watch(
    ctx: typer.Context,
    vault: VaultArg,
    interval: Annotated[float, typer.Option(
        "--interval", "-i", help="Seconds between scans for changed notes",
    )] = 1.0,
):
    """Tag created and modified notes as they change (requires --auto in init)."""
    session = _open_session(ctx, vault)
    queue = AutoTagQueue(session.annotator, debounce_seconds=session.config.debounce_seconds)
    if not queue.enabled:
        session.close()
        typer.echo(
            "Error: auto-tagging is off or incomplete. "
            "Run: notetagger init VAULT --auto --model NAME --tags 'a, b'",
            err=True,
        )
        raise typer.Exit(1)
    try:
        validate_for_tagging(session.config)
    except ConfigurationError as e:
        session.close()
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    watcher = VaultWatcher(session.storage)
    watcher.scan()
    typer.echo(f"Watching {session.storage.root} (Ctrl-C to stop)", err=True)
    try:
        while True:
            for path in watcher.scan():
                queue.enqueue(path)
            for outcome in queue.run_due():
                if outcome.status == ANNOTATED:
                    typer.echo(f"Tagged {outcome.path}: {', '.join(outcome.tags)}", err=True)
                elif outcome.status == FAILED:
                    log_exception(outcome.error, context=f"watch {outcome.path}")
                    typer.echo(f"Failed to auto-tag {outcome.path}: {outcome.error}", err=True)
            time.sleep(interval)
    except KeyboardInterrupt:
        typer.echo("Stopped.", err=True)
    finally:
        session.close()


def main():
    app()


if __name__ == "__main__":
    main()
