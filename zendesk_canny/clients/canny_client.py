from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Protocol, runtime_checkable

import requests

from ..config import CannyConfig
from ..errors import CreationError

logger = logging.getLogger(__name__)


# ---------- Request payloads ----------


@dataclass
class CreatePost:
    """Fields of a posts/create call."""

    author_id: str
    board_id: str
    details: str
    title: str

    def to_json(self) -> Dict[str, Any]:
        return {
            "authorID": self.author_id,
            "boardID": self.board_id,
            "details": self.details,
            "title": self.title,
        }


@dataclass
class CreateComment:
    """Fields of a comments/create call."""

    author_id: str
    post_id: str
    value: str

    def to_json(self) -> Dict[str, Any]:
        return {"authorID": self.author_id, "postID": self.post_id, "value": self.value}


@dataclass
class CreateVote:
    """Fields of a votes/create call."""

    post_id: str
    voter_id: str

    def to_json(self) -> Dict[str, Any]:
        return {"postID": self.post_id, "voterID": self.voter_id}


@dataclass
class FindOrCreateUser:
    """
    Fields of a users/find_or_create call. Empty fields are left out of the
    request so Canny matches on what we actually know.
    """

    name: str = ""
    email: str = ""
    user_id: str = ""  # external id on the Zendesk side
    created: Optional[str] = None  # ISO-8601

    def to_json(self) -> Dict[str, Any]:
        payload = {
            "name": self.name,
            "email": self.email,
            "userID": self.user_id,
            "created": self.created,
        }
        return {k: v for k, v in payload.items() if v}


@runtime_checkable
class DestinationClient(Protocol):
    """
    Write-side client abstraction used by the migrator.

    Implementations are stateless wrappers: they serialize one record, send
    it, and return the new identifier or raise CreationError. No retries or
    batching.
    """

    def create_post(self, post: CreatePost) -> str:
        raise NotImplementedError

    def create_comment(self, comment: CreateComment) -> str:
        raise NotImplementedError

    def create_vote(self, vote: CreateVote) -> None:
        raise NotImplementedError

    def find_or_create_user(self, user: FindOrCreateUser) -> str:
        raise NotImplementedError


class CannyClient(DestinationClient):
    """
    Canny REST API client. Every call is a JSON POST carrying the API key.
    """

    def __init__(self, config: CannyConfig, session: Optional[requests.Session] = None) -> None:
        self._cfg = config
        self.base_url = config.base_url.rstrip("/")
        self._session = session or requests.Session()
        self._session.headers.update({"Content-Type": "application/json"})

    def create_post(self, post: CreatePost) -> str:
        """Create a post on a board and return its Canny id."""
        return self._post_for_id("posts/create", post.to_json())

    def create_comment(self, comment: CreateComment) -> str:
        return self._post_for_id("comments/create", comment.to_json())

    def create_vote(self, vote: CreateVote) -> None:
        """
        Votes have no identifier on the Canny side; the API acknowledges
        with a bare "success" body.
        """
        resp = self._post("votes/create", vote.to_json())
        if resp.text.strip().strip('"') != "success":
            raise CreationError(
                f"unknown error while creating vote for postID={vote.post_id} "
                f"voterID={vote.voter_id}: {resp.text[:200]}"
            )

    def find_or_create_user(self, user: FindOrCreateUser) -> str:
        return self._post_for_id("users/find_or_create", user.to_json())

    # -------------------------------------------------------------------------
    # Internal: HTTP
    # -------------------------------------------------------------------------

    def _post_for_id(self, endpoint: str, payload: Dict[str, Any]) -> str:
        resp = self._post(endpoint, payload)
        try:
            body = resp.json()
        except ValueError as exc:
            raise CreationError(
                f"cannot decode response of {endpoint} as json: {exc}, response: {resp.text[:500]}"
            ) from exc

        new_id = str(body.get("id") or "") if isinstance(body, dict) else ""
        if not new_id:
            raise CreationError(f"{endpoint} returned no id, response: {resp.text[:500]}")
        return new_id

    def _post(self, endpoint: str, payload: Dict[str, Any]) -> requests.Response:
        url = f"{self.base_url}/api/v1/{endpoint}"
        body = dict(payload)
        body["apiKey"] = self._cfg.api_key

        logger.debug("POST %s %s", url, payload)
        try:
            resp = self._session.post(url, json=body, timeout=self._cfg.timeout_seconds)
        except (requests.RequestException, OSError) as exc:
            raise CreationError(f"error while making request to {url}: {exc}, request: {payload}") from exc

        if resp.status_code != 200:
            raise CreationError(
                f"error while making request to {url}: {resp.status_code} - {resp.text[:500]}, request: {payload}"
            )
        return resp
