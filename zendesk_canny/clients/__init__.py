from __future__ import annotations

"""
Client package for the two external REST services.

This package exposes:
- SourceClient / ZendeskClient: paginated, read-only access to Zendesk
  community posts, comments, votes and users.
- DestinationClient / CannyClient: record creation in Canny, plus the
  request payload dataclasses it accepts.
"""

from .canny_client import (
    CannyClient,
    CreateComment,
    CreatePost,
    CreateVote,
    DestinationClient,
    FindOrCreateUser,
)
from .zendesk_client import SourceClient, ZendeskClient

__all__ = [
    "SourceClient",
    "ZendeskClient",
    "DestinationClient",
    "CannyClient",
    "CreatePost",
    "CreateComment",
    "CreateVote",
    "FindOrCreateUser",
]
