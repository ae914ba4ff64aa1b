import argparse
import importlib
import logging
import os
import sys
import time
from pathlib import Path

from assetdock.app_shell.context import AssetContext
from assetdock.components.collections import CollectionRegistry
from assetdock.components.paths import DefaultPathGenerator
from assetdock.rules.loader import RULES_ENV, load_rules_from_env

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("cli")

DB_PATH_ENV = "ASSETDOCK_DB_PATH"
DEFAULT_DB_PATH = "assetdock.db"
DEFAULT_RULES_PATH = "assetdock.yaml"
COLLECTIONS_ENV = "ASSETDOCK_COLLECTIONS"


def load_registrar(target: str):
    """Resolve "package.module:function"; the function receives the registry."""
    module_name, _, attr = target.partition(":")
    if not module_name or not attr:
        raise ValueError(f"Expected module:function, got {target!r}")
    return getattr(importlib.import_module(module_name), attr)


def get_context(db_path: str, collections: str | None = None) -> AssetContext:
    try:
        rules = load_rules_from_env(DEFAULT_RULES_PATH)
    except (FileNotFoundError, ValueError) as e:
        logger.error("Could not load rules (%s): %s", os.environ.get(RULES_ENV, DEFAULT_RULES_PATH), e)
        sys.exit(1)
    registry = CollectionRegistry(
        DefaultPathGenerator(rules.storage.public_dir, rules.storage.private_dir)
    )
    if collections:
        try:
            load_registrar(collections)(registry)
        except (ImportError, AttributeError, ValueError) as e:
            logger.error("Could not load collections from %s: %s", collections, e)
            sys.exit(1)
    return AssetContext.create(rules, db_path, registry=registry)


def handle_migrate(ctx: AssetContext, args: argparse.Namespace) -> None:
    applied = ctx.migrate(args.db)
    print(f"Applied {len(applied)} migration(s).")


def handle_work(ctx: AssetContext, args: argparse.Namespace) -> None:
    if args.once:
        result = ctx.worker.run_due_jobs(max_jobs=args.max_jobs)
        print(
            f"Processed {result.total_processed} job(s): {result.succeeded} succeeded, "
            f"{result.failed} failed, {result.retried} retrying."
        )
        return

    scheduler = ctx.scheduler(args.interval)
    scheduler.start()
    logger.info("Worker running; press Ctrl+C to stop")
    try:
        while scheduler.is_running:
            time.sleep(1.0)
    except KeyboardInterrupt:
        logger.info("Stopping worker")
    finally:
        scheduler.stop()


def handle_gc(ctx: AssetContext, args: argparse.Namespace) -> None:
    report = ctx.garbage_collector.collect()
    print(
        f"Purged {len(report.purged)} asset(s); "
        f"{report.file_errors} file error(s), {report.row_errors} row error(s)."
    )


def handle_clean_pending(ctx: AssetContext, args: argparse.Namespace) -> None:
    removed = ctx.pending_manager.clean_expired_pending_assets()
    print(f"Removed {removed} expired pending asset(s).")


def handle_show_rules(ctx: AssetContext, args: argparse.Namespace) -> None:
    print(ctx.rules.model_dump_json(indent=2))


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="assetdock CLI")
    parser.add_argument(
        "--db",
        default=os.environ.get(DB_PATH_ENV, DEFAULT_DB_PATH),
        help="SQLite database path",
    )
    parser.add_argument(
        "--collections",
        default=os.environ.get(COLLECTIONS_ENV),
        help="module:function that registers code-defined collections",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("migrate", help="Apply database migrations")

    work_parser = subparsers.add_parser("work", help="Process queued variant jobs")
    work_parser.add_argument("--once", action="store_true", help="Run due jobs once and exit")
    work_parser.add_argument("--max-jobs", type=int, default=10, help="Jobs per run")
    work_parser.add_argument("--interval", type=float, default=5.0, help="Poll interval (s)")

    subparsers.add_parser("gc", help="Purge soft-deleted assets")
    subparsers.add_parser("clean-pending", help="Remove expired pending assets")
    subparsers.add_parser("show-rules", help="Print the effective rules")

    args = parser.parse_args(argv)

    if not Path(args.db).parent.exists():
        logger.error("Database directory for %s does not exist.", args.db)
        sys.exit(1)

    ctx = get_context(args.db, args.collections)

    handlers = {
        "migrate": handle_migrate,
        "work": handle_work,
        "gc": handle_gc,
        "clean-pending": handle_clean_pending,
        "show-rules": handle_show_rules,
    }
    handlers[args.command](ctx, args)


if __name__ == "__main__":
    main()
