from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Optional


# ---------- Zendesk (source) configuration ----------


@dataclass
class ZendeskConfig:
    """
    Connection settings for the Zendesk Help Center API (read-only).
    """

    base_url: str = ""  # e.g. https://your_company.zendesk.com
    username: str = ""
    password: str = ""
    timeout_seconds: float = 30.0  # HTTP timeout per request


# ---------- Canny (destination) configuration ----------


@dataclass
class CannyConfig:
    """
    Connection settings for the Canny API (write).
    """

    base_url: str = "https://canny.io"
    api_key: str = ""
    timeout_seconds: float = 30.0


# ---------- Migration configuration ----------


@dataclass
class MigrationConfig:
    """
    What we migrate and how.

    - topics maps a Zendesk topic id to the Canny board id its posts go to.
      Several topics may share a board.
    - agent_mapping maps Zendesk agent ids to Canny admin ids; those users
      are never looked up or created in Canny.
    - default_user_id is used for records without a Zendesk author. When it
      is empty such records fail instead.
    """

    topics: Dict[str, str] = field(default_factory=dict)
    parallelism: int = 10  # concurrent post detail loaders
    default_user_id: str = ""
    agent_mapping: Dict[int, str] = field(default_factory=dict)
    verbose: bool = False

    # Rewrite the state file after every created record instead of only
    # at the end of the run.
    save_every_record: bool = False


# ---------- Paths configuration ----------


@dataclass
class PathsConfig:
    """
    Files the migration reads and writes.
    """

    state_path: Path = Path("./state.json")


# ---------- Top-level application configuration ----------


@dataclass
class AppConfig:
    zendesk: ZendeskConfig = field(default_factory=ZendeskConfig)
    canny: CannyConfig = field(default_factory=CannyConfig)
    migration: MigrationConfig = field(default_factory=MigrationConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)


def parse_topic_pairs(pairs: Iterable[str]) -> Dict[str, str]:
    """
    Parse "zendesk_topic_id:canny_board_id" arguments into a mapping.

    Raises ValueError on anything that is not exactly two non-empty parts.
    """
    topics: Dict[str, str] = {}
    for pair in pairs:
        parts = pair.split(":")
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise ValueError(f"invalid topic mapping {pair!r}, expected topic_id:board_id")
        topics[parts[0]] = parts[1]
    return topics


def parse_agent_pairs(pairs: Iterable[str]) -> Dict[int, str]:
    """
    Parse "zendeskID:cannyID" agent arguments. The Zendesk side must be numeric.
    """
    agents: Dict[int, str] = {}
    for pair in pairs:
        parts = pair.split(":")
        if len(parts) != 2 or not parts[1]:
            raise ValueError(f"invalid agent mapping {pair!r}, expected zendeskID:cannyID")
        try:
            zendesk_id = int(parts[0])
        except ValueError as exc:
            raise ValueError(f"invalid agent mapping {pair!r}, Zendesk id must be numeric") from exc
        agents[zendesk_id] = parts[1]
    return agents


def get_config(
    zendesk: Optional[ZendeskConfig] = None,
    canny: Optional[CannyConfig] = None,
    migration: Optional[MigrationConfig] = None,
    paths: Optional[PathsConfig] = None,
) -> AppConfig:
    """
    Main entrypoint to get the full application config.

    Usage:
        from zendesk_canny.config import get_config
        cfg = get_config()
        cfg.migration.parallelism
    """
    cfg = AppConfig(
        zendesk=zendesk or ZendeskConfig(),
        canny=canny or CannyConfig(),
        migration=migration or MigrationConfig(),
        paths=paths or PathsConfig(),
    )

    if cfg.migration.parallelism < 1:
        raise ValueError(f"parallelism must be at least 1, got {cfg.migration.parallelism}")

    # Ensure the directory holding the state file exists
    cfg.paths.state_path.parent.mkdir(parents=True, exist_ok=True)

    return cfg
