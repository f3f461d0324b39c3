"""CLI entry point for notesync."""

import argparse
import asyncio
import json
import logging
import signal
import sys
from datetime import datetime
from pathlib import Path

from .config import Config, load_config
from .errors import StorageError
from .notes import Note, NoteStore
from .storage import FileBlobStore, static_root
from .sync import BackgroundSync, BlobRemote, HttpRemote, SyncEngine, SyncResult, SyncStatus

logger = logging.getLogger(__name__)


class JSONFormatter(logging.Formatter):
    """Emit each record as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created).isoformat(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, ensure_ascii=False)


def setup_logging(verbose: bool = False, log_level: str | None = None, json_output: bool = False) -> None:
    """Configure root logging; WARNING unless -v or --log-level raise it."""
    if log_level:
        level = getattr(logging, log_level.upper())
    else:
        level = logging.DEBUG if verbose else logging.WARNING

    handler = logging.StreamHandler()
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))

    logging.basicConfig(level=level, handlers=[handler])


def build_engine(config: Config) -> SyncEngine:
    """Wire storage, store, remote and engine from configuration.

    Raises:
        StorageError: If the storage root is unusable.
    """
    blobs = FileBlobStore(static_root(config.storage.root))
    store = NoteStore(blobs, notes_name=config.storage.notes_name)

    if config.remote.is_local:
        remote = BlobRemote(blobs, name=config.storage.snapshot_name)
    else:
        remote = HttpRemote(config.remote.url, timeout=config.remote.timeout_seconds)

    return SyncEngine(store, remote, blobs, snapshot_name=config.storage.snapshot_name)


async def _open_engine(args: argparse.Namespace) -> SyncEngine | None:
    """Build the engine and load the local store, reporting fatal errors."""
    config = load_config(args.config)
    try:
        engine = build_engine(config)
    except StorageError as e:
        print(f"Error: {e}", file=sys.stderr)
        return None

    await engine.store.load()
    return engine


def _report(operation: str, result: SyncResult) -> int:
    """Print a one-line outcome and return the exit code."""
    if result.status == SyncStatus.SUCCESS:
        print(f"{operation} complete")
    elif result.status == SyncStatus.OFFLINE:
        print(f"{operation} complete (server unreachable, used local snapshot)")
    else:
        print(f"{operation} failed: {result.error}", file=sys.stderr)
    return 0 if result.ok else 1


def _format_note(note: Note) -> str:
    updated = datetime.fromtimestamp(note.updated_at / 1000).strftime("%Y-%m-%d %H:%M:%S")
    return f"{note.id}  {updated}  {note.title}"


async def cmd_engine_op(args: argparse.Namespace) -> int:
    """Run a single push, pull or sync."""
    engine = await _open_engine(args)
    if engine is None:
        return 1

    try:
        operation = getattr(engine, args.operation)
        result = await operation()
    finally:
        await engine.remote.close()

    return _report(args.operation.capitalize(), result)


async def cmd_run(args: argparse.Namespace) -> int:
    """Keep the local store synchronized until interrupted."""
    config = load_config(args.config)
    if not config.sync.enabled:
        print("Sync is disabled in configuration", file=sys.stderr)
        return 1

    engine = await _open_engine(args)
    if engine is None:
        return 1

    print(f"Syncing {config.storage.root} with {engine.remote.describe()}")
    print("Press Ctrl-C to stop")

    engine.store.subscribe(lambda notes: logger.info(f"Local collection now has {len(notes)} notes"))
    refresher = BackgroundSync(
        engine,
        refresh_interval_ms=config.sync.refresh_interval_ms,
        settle_delay_ms=config.sync.settle_delay_ms,
    )

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop_event.set)
        except (NotImplementedError, RuntimeError):
            pass

    try:
        await refresher.run(stop_event)
    finally:
        await engine.remote.close()

    logger.info(f"Final sync status: {engine.get_sync_status()}")
    print("\nStopped")
    return 0


async def cmd_serve(args: argparse.Namespace) -> int:
    """Start the sync server."""
    config = load_config(args.config)

    try:
        from .server import create_app

        import uvicorn
    except ImportError as e:
        print(f"Server dependencies not installed: {e}", file=sys.stderr)
        print("Install with: pip install notesync[server]", file=sys.stderr)
        return 1

    try:
        blobs = FileBlobStore(static_root(config.storage.root))
    except StorageError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    host = args.host or config.server.host
    port = args.port or config.server.port

    print("Starting notesync server")
    print(f"Storage: {blobs.root / config.storage.snapshot_name}")
    print(f"URL: http://{host}:{port}")

    app = create_app(blobs, snapshot_name=config.storage.snapshot_name)

    verbose = getattr(args, "verbose", False)
    config_uvicorn = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_level="info" if verbose else "warning",
    )
    server = uvicorn.Server(config_uvicorn)
    await server.serve()

    return 0


async def cmd_status(args: argparse.Namespace) -> int:
    """Show configuration, server reachability and local state."""
    config = load_config(args.config)
    engine = await _open_engine(args)
    if engine is None:
        return 1

    try:
        reachable = await engine.remote.health_check()
    finally:
        await engine.remote.close()

    status_data = {
        "timestamp": datetime.now().isoformat(),
        "storage": {
            "root": config.storage.root,
            "notes_name": config.storage.notes_name,
            "snapshot_name": config.storage.snapshot_name,
        },
        "remote": {
            "location": engine.remote.describe(),
            "reachable": reachable,
            "timeout_seconds": config.remote.timeout_seconds,
        },
        "sync": {
            "enabled": config.sync.enabled,
            "refresh_interval_ms": config.sync.refresh_interval_ms,
        },
        "local": engine.store.get_stats(),
        "engine": engine.get_sync_status(),
    }

    if args.json:
        print(json.dumps(status_data, indent=2))
        return 0

    print("notesync Status")
    print("===============")
    print(f"Storage: {config.storage.root}")
    print(f"  Notes: {status_data['local']['note_count']} in {config.storage.notes_name}")
    print()
    print(f"Remote ({engine.remote.describe()}):")
    print(f"  Status: {'Reachable' if reachable else 'Not reachable'}")
    if not reachable:
        print("  Changes will be kept in the local snapshot until the server is back")
    print()
    print(f"Background sync: {'enabled' if config.sync.enabled else 'disabled'}")

    return 0


async def _propagate_change(engine: SyncEngine, args: argparse.Namespace) -> None:
    """Push a local mutation, let it settle, then pull the server state back.

    The mutation itself has already been persisted locally.
    """
    config = load_config(args.config)
    if args.no_push or not config.sync.enabled:
        return

    refresher = BackgroundSync(
        engine,
        refresh_interval_ms=config.sync.refresh_interval_ms,
        settle_delay_ms=config.sync.settle_delay_ms,
    )
    result = await refresher.notify_local_change()
    if result is None:
        print("Push failed, see log for details", file=sys.stderr)
    elif result.status == SyncStatus.OFFLINE:
        print("Server unreachable, change saved to local snapshot")
    elif not result.ok:
        print(f"Push failed: {result.error}", file=sys.stderr)


async def cmd_note(args: argparse.Namespace) -> int:
    """Local note operations."""
    engine = await _open_engine(args)
    if engine is None:
        return 1

    store = engine.store
    try:
        if args.note_command == "list":
            notes = store.get_all()
            if not notes:
                print("No notes")
            for note in notes:
                print(_format_note(note))
            return 0

        if args.note_command == "show":
            note = store.get_by_id(args.id)
            if note is None:
                print(f"Note not found: {args.id}", file=sys.stderr)
                return 1
            print(note.title)
            print("-" * len(note.title))
            print(note.content)
            return 0

        if args.note_command == "add":
            note = await store.create(args.title, args.content)
            print(f"Created {note.id}")
        elif args.note_command == "edit":
            if not await store.update(args.id, args.title, args.content):
                print(f"Note not found: {args.id}", file=sys.stderr)
                return 1
            print(f"Updated {args.id}")
        elif args.note_command == "rm":
            if not await store.delete(args.id):
                print(f"Note not found: {args.id}", file=sys.stderr)
                return 1
            print(f"Deleted {args.id}")

        await _propagate_change(engine, args)
        return 0

    except StorageError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        await engine.remote.close()


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="notesync",
        description="Offline-first note synchronization",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        default=None,
        help="Path to config file",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["warning", "info", "debug"],
        default=None,
        help="Set log level explicitly (overrides -v/--verbose)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Output logs as JSON for machine parsing",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Server
    serve_parser = subparsers.add_parser("serve", help="Start the sync server")
    serve_parser.add_argument(
        "-p", "--port",
        type=int,
        default=None,
        help="Port to listen on (default: from config, 8080)",
    )
    serve_parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host to bind to (default: from config, 0.0.0.0)",
    )
    serve_parser.set_defaults(func=cmd_serve)

    # Continuous sync
    run_parser = subparsers.add_parser("run", help="Keep notes synchronized in the background")
    run_parser.set_defaults(func=cmd_run)

    # One-shot operations
    for operation, help_text in (
        ("push", "Send local notes to the server"),
        ("pull", "Replace local notes with the server's"),
        ("sync", "Push, then merge server and local notes"),
    ):
        op_parser = subparsers.add_parser(operation, help=help_text)
        op_parser.set_defaults(func=cmd_engine_op, operation=operation)

    # Status
    status_parser = subparsers.add_parser("status", help="Show sync status")
    status_parser.add_argument(
        "--json",
        action="store_true",
        help="Output status as JSON",
    )
    status_parser.set_defaults(func=cmd_status)

    # Note commands
    note_parser = subparsers.add_parser("note", help="Manage local notes")
    note_parser.add_argument(
        "--no-push",
        action="store_true",
        help="Do not push after changing a note",
    )
    note_subparsers = note_parser.add_subparsers(dest="note_command", help="Note commands")

    note_subparsers.add_parser("list", help="List notes")

    note_show = note_subparsers.add_parser("show", help="Show a note")
    note_show.add_argument("id", help="Note id")

    note_add = note_subparsers.add_parser("add", help="Create a note")
    note_add.add_argument("title", help="Note title")
    note_add.add_argument("content", nargs="?", default="", help="Note content")

    note_edit = note_subparsers.add_parser("edit", help="Replace a note's title and content")
    note_edit.add_argument("id", help="Note id")
    note_edit.add_argument("title", help="New title")
    note_edit.add_argument("content", nargs="?", default="", help="New content")

    note_rm = note_subparsers.add_parser("rm", help="Delete a note")
    note_rm.add_argument("id", help="Note id")

    note_parser.set_defaults(func=cmd_note)

    args = parser.parse_args()

    setup_logging(args.verbose, args.log_level, args.json_logs)

    if not args.command:
        parser.print_help()
        return 1

    if args.command == "note" and not args.note_command:
        note_parser.print_help()
        return 1

    try:
        return asyncio.run(args.func(args))
    except KeyboardInterrupt:
        print("\nShutting down...")
        return 130


if __name__ == "__main__":
    sys.exit(main())
