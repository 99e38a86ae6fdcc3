from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


def _parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse a Zendesk ISO-8601 timestamp ("2019-03-01T10:00:00Z").

    Returns None for missing or unparseable values instead of crashing.
    """
    if not value or not isinstance(value, str):
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


@dataclass
class User:
    """
    A Zendesk user referenced by a post, comment or vote.

    Identity is the Zendesk numeric id; the other fields are what Canny's
    find-or-create call needs to match or create the same person.
    """

    id: int
    created_at: Optional[datetime] = None
    name: str = ""
    email: str = ""
    external_id: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(
            id=int(data["id"]),
            created_at=_parse_timestamp(data.get("created_at")),
            name=data.get("name") or "",
            email=data.get("email") or "",
            external_id=str(data.get("external_id") or ""),
        )


@dataclass
class Comment:
    """
    A comment under a community post. Order within a post follows the
    order the source API returned the pages in.
    """

    id: int
    body: str
    author_id: int
    author: Optional[User] = None  # filled after the user batch load

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Comment":
        return cls(
            id=int(data["id"]),
            body=data.get("body") or "",
            author_id=int(data.get("author_id") or 0),
        )


@dataclass
class Vote:
    """
    A vote on a community post. Votes whose voter cannot be resolved are
    skipped by the migrator.
    """

    id: int
    user_id: int
    user: Optional[User] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Vote":
        return cls(
            id=int(data["id"]),
            user_id=int(data.get("user_id") or 0),
        )


@dataclass
class Post:
    """
    A Zendesk Help Center community post.

    This is the parent record of the pipeline:
    - listed page by page per topic
    - enriched with its comments and votes by the worker pool
    - linked to resolved users by the collector
    - created on a Canny board by the migrator
    """

    id: int
    title: str
    details: str
    author_id: int
    comment_count: int = 0  # declared by the listing, drives the comment fetch
    vote_count: int = 0  # declared by the listing, drives the vote fetch
    comments: List[Comment] = field(default_factory=list)
    votes: List[Vote] = field(default_factory=list)
    author: Optional[User] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Post":
        return cls(
            id=int(data["id"]),
            title=data.get("title") or "",
            details=data.get("details") or "",
            author_id=int(data.get("author_id") or 0),
            comment_count=int(data.get("comment_count") or 0),
            vote_count=int(data.get("vote_count") or 0),
        )

    def user_ids(self) -> List[int]:
        """All user ids this post references: author, commenters, voters."""
        ids = [self.author_id]
        ids.extend(c.author_id for c in self.comments)
        ids.extend(v.user_id for v in self.votes)
        return ids
