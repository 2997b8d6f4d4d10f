#!/usr/bin/env python3
"""
main.py

Control center for tag category → Mailchimp list operations.

    python -m mailchimp_sync.main create-lists ORG TAG_ID [TAG_ID ...]
    python -m mailchimp_sync.main delete-lists ORG LIST_ID [LIST_ID ...]
    python -m mailchimp_sync.main sync ORG --supporters 1 2 --select 10 --deselect 11 [--wait]
    python -m mailchimp_sync.main batch-status ORG BATCH_ID [--wait]
    python -m mailchimp_sync.main --clean ...        # empty logs/ first
"""

import argparse
import logging
import os
import shutil
import sys
from typing import List, Optional

from . import config
from .batch import BatchOperationExecutor, PollPolicy
from .errors import MailchimpSyncError
from .list_manager import MailchimpListManager
from .notifications import initialize_notifier, send_final_notification
from .store import InMemoryStore
from .sync import MembershipSyncOrchestrator, TagSelection

logger = logging.getLogger(__name__)


def setup_logging(level: str = config.LOG_LEVEL, log_dir: str = config.LOG_DIR):
    """File + console logging; tokens never reach these handlers"""
    os.makedirs(log_dir, exist_ok=True)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[
            logging.FileHandler(os.path.join(log_dir, "sync.log")),
            logging.StreamHandler()
        ]
    )
    # Quiet noisy libs
    logging.getLogger("urllib3").setLevel(logging.INFO)
    logging.getLogger("requests").setLevel(logging.INFO)


def clean_workspace(log_dir: str = config.LOG_DIR):
    """Empty the log directory for a fresh run"""
    if os.path.exists(log_dir):
        shutil.rmtree(log_dir)
        print(f"🧹 Cleaned {log_dir}/")
    os.makedirs(log_dir, exist_ok=True)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mailchimp_sync",
                                     description="Sync tag categories and supporters to Mailchimp lists")
    parser.add_argument("--store", default=config.DATA_STORE_PATH,
                        help="JSON data store file (default: %(default)s)")
    parser.add_argument("--clean", action="store_true", help="empty the log directory first")
    parser.add_argument("--log-level", default=config.LOG_LEVEL)
    commands = parser.add_subparsers(dest="command", required=True)

    create = commands.add_parser("create-lists", help="create Mailchimp lists for tag categories")
    create.add_argument("organization")
    create.add_argument("tag_ids", nargs="+")

    delete = commands.add_parser("delete-lists", help="delete Mailchimp lists")
    delete.add_argument("organization")
    delete.add_argument("list_ids", nargs="+")

    sync = commands.add_parser("sync", help="sync supporter memberships from tag selections")
    sync.add_argument("organization")
    sync.add_argument("--supporters", nargs="+", required=True)
    sync.add_argument("--select", nargs="*", default=[], help="tag ids the supporters now have")
    sync.add_argument("--deselect", nargs="*", default=[], help="tag ids removed from the supporters")
    sync.add_argument("--wait", action="store_true", help="poll until the batch finishes")

    status = commands.add_parser("batch-status", help="show a batch job's status")
    status.add_argument("organization")
    status.add_argument("batch_id")
    status.add_argument("--wait", action="store_true", help="poll until the batch finishes")

    return parser


def run(args: argparse.Namespace, store: InMemoryStore) -> int:
    """Execute one parsed command against a store"""
    settings = config.ClientSettings.from_env()

    if args.command == "create-lists":
        created = MailchimpListManager(store, settings=settings).create_lists(args.organization, args.tag_ids)
        store.save()
        for item in created:
            print(f"✅ {item.tag_category_id} → {item.remote_list_id} ({item.name})")
        print(f"Created {len(created)} list(s)")

    elif args.command == "delete-lists":
        deleted = MailchimpListManager(store, settings=settings).delete_lists(args.organization, args.list_ids)
        store.save()
        print(f"🗑️ Deleted {len(deleted)} list(s)")

    elif args.command == "sync":
        selections = [TagSelection(t, True) for t in args.select] + \
                     [TagSelection(t, False) for t in args.deselect]
        result = MembershipSyncOrchestrator(store, settings=settings).sync_supporters(
            args.organization, args.supporters, selections, wait=args.wait, policy=PollPolicy())
        if result is None:
            print("Nothing to sync")
        else:
            print(f"📦 Batch {result.job_id}: {result.operation_count} operations")
            if result.status:
                print(f"   status: {result.status.status}, errored: {result.status.errored_operations}")

    elif args.command == "batch-status":
        executor = BatchOperationExecutor(store, settings=settings)
        if args.wait:
            status = executor.wait_for_completion(args.organization, args.batch_id, PollPolicy())
        else:
            status = executor.poll_status(args.organization, args.batch_id)
        print(f"📦 Batch {status.id}: {status.status} "
              f"({status.finished_operations}/{status.total_operations} finished, "
              f"{status.errored_operations} errored)")

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main execution function"""
    args = build_parser().parse_args(argv)
    if args.clean:
        clean_workspace()
    setup_logging(args.log_level.upper())
    initialize_notifier(config.TEAMS_WEBHOOK_URL)

    store = InMemoryStore.load(args.store)
    logger.info(f"🎮 Running '{args.command}' against {store}")
    try:
        code = run(args, store)
    except MailchimpSyncError as e:
        logger.error(f"❌ {args.command} failed: {e}")
        code = 1
    send_final_notification(f"Mailchimp {args.command}")
    return code


if __name__ == "__main__":
    sys.exit(main())
