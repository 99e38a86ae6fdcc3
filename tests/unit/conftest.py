from __future__ import annotations

import threading
from typing import Any, Dict, Iterator, List, Optional, Sequence

import pytest

from zendesk_canny.clients import (
    CreateComment,
    CreatePost,
    CreateVote,
    DestinationClient,
    FindOrCreateUser,
    SourceClient,
)
from zendesk_canny.errors import CreationError, FetchError, TransportError
from zendesk_canny.models import Comment, User, Vote


class FakeSource(SourceClient):
    """
    In-memory Zendesk. Every call is recorded so tests can assert on what
    the pipeline asked for.
    """

    def __init__(self) -> None:
        self.post_pages: Dict[str, List[List[Dict[str, Any]]]] = {}
        self.post_errors: Dict[str, FetchError] = {}  # raised after the listed pages
        self.comments: Dict[int, List[Dict[str, Any]]] = {}
        self.votes: Dict[int, List[Dict[str, Any]]] = {}
        self.comment_errors: Dict[int, FetchError] = {}
        self.vote_errors: Dict[int, FetchError] = {}
        self.users: Dict[int, Dict[str, Any]] = {}
        self.user_error: Optional[FetchError] = None

        self._lock = threading.Lock()
        self.comment_calls: List[int] = []
        self.vote_calls: List[int] = []
        self.user_batches: List[List[int]] = []

    # ---------- setup helpers ----------

    def add_topic(self, topic: str, *pages: List[Dict[str, Any]]) -> None:
        self.post_pages[topic] = [list(page) for page in pages]

    def add_user(self, user_id: int, name: str = "", email: str = "") -> None:
        self.users[user_id] = {
            "id": user_id,
            "name": name or f"user {user_id}",
            "email": email or f"user{user_id}@example.com",
            "external_id": f"ext-{user_id}",
            "created_at": "2019-03-01T10:00:00Z",
        }

    # ---------- SourceClient ----------

    def posts_url(self, topic: str) -> str:
        return f"posts:{topic}"

    def iter_pages(self, url: str, key: str) -> Iterator[List[Dict[str, Any]]]:
        topic = url.split(":", 1)[1]
        for page in self.post_pages.get(topic, []):
            yield page
        if topic in self.post_errors:
            raise self.post_errors[topic]

    def fetch_comments(self, post_id: int) -> List[Comment]:
        with self._lock:
            self.comment_calls.append(post_id)
        if post_id in self.comment_errors:
            raise self.comment_errors[post_id]
        return [Comment.from_dict(c) for c in self.comments.get(post_id, [])]

    def fetch_votes(self, post_id: int) -> List[Vote]:
        with self._lock:
            self.vote_calls.append(post_id)
        if post_id in self.vote_errors:
            raise self.vote_errors[post_id]
        return [Vote.from_dict(v) for v in self.votes.get(post_id, [])]

    def fetch_users(self, ids: Sequence[int]) -> List[User]:
        with self._lock:
            self.user_batches.append(list(ids))
        if self.user_error is not None:
            raise self.user_error
        return [User.from_dict(self.users[i]) for i in ids if i in self.users]


class FakeDestination(DestinationClient):
    """
    In-memory Canny. Hands out sequential ids and can be told to reject
    the n-th call of a given kind.
    """

    def __init__(self) -> None:
        self.posts: List[CreatePost] = []
        self.comments: List[CreateComment] = []
        self.votes: List[CreateVote] = []
        self.users: List[FindOrCreateUser] = []
        self.fail_on: Dict[str, int] = {}  # kind -> 1-based call number that fails
        self.fail_with: Dict[str, BaseException] = {}  # kind -> raised instead of CreationError
        self._calls: Dict[str, int] = {}

    def _maybe_fail(self, kind: str) -> None:
        self._calls[kind] = self._calls.get(kind, 0) + 1
        if self.fail_on.get(kind) == self._calls[kind]:
            raise self.fail_with.get(kind) or CreationError(f"{kind} rejected")

    @property
    def created(self) -> int:
        return len(self.posts) + len(self.comments) + len(self.votes)

    def create_post(self, post: CreatePost) -> str:
        self._maybe_fail("post")
        self.posts.append(post)
        return f"cp{len(self.posts)}"

    def create_comment(self, comment: CreateComment) -> str:
        self._maybe_fail("comment")
        self.comments.append(comment)
        return f"cc{len(self.comments)}"

    def create_vote(self, vote: CreateVote) -> None:
        self._maybe_fail("vote")
        self.votes.append(vote)

    def find_or_create_user(self, user: FindOrCreateUser) -> str:
        self._maybe_fail("user")
        self.users.append(user)
        return f"cu-{user.user_id or user.email}"


def make_post_dict(
    post_id: int,
    author_id: int = 1,
    comment_count: int = 0,
    vote_count: int = 0,
    title: str = "",
) -> Dict[str, Any]:
    return {
        "id": post_id,
        "title": title or f"Post {post_id}",
        "details": f"<p>Details of <b>post {post_id}</b></p>",
        "author_id": author_id,
        "comment_count": comment_count,
        "vote_count": vote_count,
    }


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def destination() -> FakeDestination:
    return FakeDestination()


@pytest.fixture
def post_dict():
    return make_post_dict


@pytest.fixture
def transport_error():
    def _make(message: str = "boom", status_code: int = 500) -> TransportError:
        return TransportError(message, status_code=status_code)

    return _make
