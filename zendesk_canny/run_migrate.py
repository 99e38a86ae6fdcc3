from __future__ import annotations

"""
CLI entrypoint for the migration.

Usage (from repo root):

    python -m zendesk_canny.run_migrate \\
        --z-url https://your_company.zendesk.com --z-username me --z-password secret \\
        --c-key CANNY_API_KEY 115000153468-Integrations:board_id

This will:
- Load ./state.json (if present) to know what was already migrated
- For each topic:board pair, collect the topic's posts with their
  comments, votes and users from Zendesk
- Create whatever is not in the state yet on the Canny board
- Write the updated ./state.json
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from .clients import CannyClient, ZendeskClient
from .config import (
    CannyConfig,
    MigrationConfig,
    PathsConfig,
    ZendeskConfig,
    get_config,
    parse_agent_pairs,
    parse_topic_pairs,
)
from .errors import LedgerError
from .ledger import MigrationLedger
from .migrator import Migrator, TopicSummary

SENSITIVE_KEYS = {"z_password", "c_key"}

log = logging.getLogger("zendesk_canny")


def mask_sensitive(ns: argparse.Namespace) -> dict:
    """Return a dict copy of args with sensitive values masked."""
    data = vars(ns).copy()
    for k in list(data.keys()):
        if k in SENSITIVE_KEYS and data[k]:
            data[k] = "****"
    return data


def configure_logging(verbose: bool, log_file: Optional[Path] = None) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    handlers: List[logging.Handler] = []
    if log_file is not None:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
    else:
        handlers.append(logging.StreamHandler(sys.stderr))

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
        handlers=handlers,
    )

    if not verbose:
        for noisy in ("urllib3", "requests"):
            logging.getLogger(noisy).setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="zendesk-to-canny",
        description="Migrate Zendesk Help Center community posts, comments and votes to Canny boards.",
    )
    p.add_argument("--z-url", required=True, help="Zendesk URL (e.g. https://your_company.zendesk.com)")
    p.add_argument("--z-username", required=True, help="User name to access Zendesk API")
    p.add_argument("--z-password", required=True, help="User password to access Zendesk API")
    p.add_argument("--c-key", required=True, help="Canny API key")
    p.add_argument("--c-url", default="https://canny.io", help="Canny API URL")
    p.add_argument("--default-user", default="",
                   help="Canny user id used for posts and comments without a Zendesk user. "
                        "If not provided, such posts and comments are skipped.")
    p.add_argument("--parallel", type=int, default=10,
                   help="Number of parallel loads from Zendesk")
    p.add_argument("--state", type=Path, default=Path("./state.json"), help="State file")
    p.add_argument("--agent", dest="agents", action="append", default=[],
                   help="Mapping zendeskID:cannyID between Zendesk agents and Canny admins (repeatable).")
    p.add_argument("--save-every-record", action="store_true",
                   help="Rewrite the state file after every created record.")
    p.add_argument("--verbose", action="store_true", help="Print verbose logging")
    p.add_argument("--log-file", type=Path, default=None,
                   help="Write logs to this file instead of stderr.")
    p.add_argument("topics", nargs="+", metavar="zendesk_topic_id:canny_board_id",
                   help="Zendesk topic to load posts from and Canny board to create them on. "
                        "Several topics can map to the same board.")
    return p


def _print_summaries(summaries: Sequence[TopicSummary]) -> None:
    for s in summaries:
        status = "aborted" if s.aborted else "done"
        log.info(
            "  %-30s -> %-24s %s: %d posts, %d created, %d skipped, %d errors",
            s.topic,
            s.board,
            status,
            s.posts_migrated,
            s.created,
            s.skipped,
            s.failed + s.load_errors,
        )


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.verbose, args.log_file)
    log.debug("Parsed args (masked): %s", mask_sensitive(args))

    try:
        topics = parse_topic_pairs(args.topics)
        agents = parse_agent_pairs(args.agents)
        cfg = get_config(
            zendesk=ZendeskConfig(base_url=args.z_url, username=args.z_username, password=args.z_password),
            canny=CannyConfig(base_url=args.c_url, api_key=args.c_key),
            migration=MigrationConfig(
                topics=topics,
                parallelism=args.parallel,
                default_user_id=args.default_user,
                agent_mapping=agents,
                verbose=args.verbose,
                save_every_record=args.save_every_record,
            ),
            paths=PathsConfig(state_path=args.state),
        )
    except ValueError as exc:
        parser.print_usage(sys.stderr)
        log.error("%s", exc)
        return 2

    try:
        ledger = MigrationLedger.load(cfg.paths.state_path)
    except LedgerError as exc:
        log.error("%s", exc)
        return 1

    try:
        migrator = Migrator(
            source=ZendeskClient(cfg.zendesk),
            destination=CannyClient(cfg.canny),
            ledger=ledger,
            topics=cfg.migration.topics,
            default_user_id=cfg.migration.default_user_id,
            agent_mapping=cfg.migration.agent_mapping,
            parallelism=cfg.migration.parallelism,
            verbose=cfg.migration.verbose,
            save_every_record=cfg.migration.save_every_record,
        )
        # Saves what was created so far before re-raising any error.
        summaries = migrator.migrate()
    except KeyboardInterrupt:
        log.warning("Interrupted by user, state of what was created so far is in %s", cfg.paths.state_path)
        return 130
    except LedgerError as exc:
        log.error("%s", exc)
        return 1
    except Exception:
        log.exception("Unhandled error during migration, state of what was created so far is in %s",
                      cfg.paths.state_path)
        return 1

    log.info("Summary:")
    _print_summaries(summaries)
    log.info("Done. State saved to %s", cfg.paths.state_path)
    return 0


if __name__ == "__main__":
    sys.exit(main())
