from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Optional, Protocol, Sequence, runtime_checkable

import requests

from ..config import ZendeskConfig
from ..errors import MalformedResponseError, TransportError
from ..models import Comment, User, Vote

logger = logging.getLogger(__name__)


@runtime_checkable
class SourceClient(Protocol):
    """
    Read-only client abstraction for the source forum.

    The collector and the worker pool only depend on this protocol, so tests
    can swap in an in-memory fake and the pipeline never sees HTTP details.
    Every method raises a FetchError subclass on failure and never retries.
    """

    def posts_url(self, topic: str) -> str:
        """URL of the first page of posts for a topic."""
        raise NotImplementedError

    def iter_pages(self, url: str, key: str) -> Iterator[List[Dict[str, Any]]]:
        """Yield the item array of every page, following next_page cursors."""
        raise NotImplementedError

    def fetch_comments(self, post_id: int) -> List[Comment]:
        raise NotImplementedError

    def fetch_votes(self, post_id: int) -> List[Vote]:
        raise NotImplementedError

    def fetch_users(self, ids: Sequence[int]) -> List[User]:
        """Fetch one batch of users by id. Unknown ids are simply absent."""
        raise NotImplementedError


class ZendeskClient(SourceClient):
    """
    Zendesk Help Center API client.

    Responsibilities:
    - Authenticated (basic auth) GETs with status and JSON checks.
    - Cursor pagination: follow "next_page" until it is empty.
    - Convert JSON payloads into Comment / Vote / User models.

    The underlying requests.Session is shared by the worker threads; each
    collection (posts of a topic, comments of a post, ...) is an independent
    cursor chain, so no other state is shared between calls.
    """

    def __init__(
        self,
        config: ZendeskConfig,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._cfg = config
        self.base_url = config.base_url.rstrip("/")

        self._session = session or requests.Session()
        self._session.auth = (config.username, config.password)
        self._session.headers.update({"Accept": "application/json"})

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def posts_url(self, topic: str) -> str:
        return f"{self.base_url}/api/v2/community/topics/{topic}/posts.json?sort_by=created_at"

    def comments_url(self, post_id: int) -> str:
        return f"{self.base_url}/api/v2/community/posts/{post_id}/comments.json?sort_by=created_at"

    def votes_url(self, post_id: int) -> str:
        return f"{self.base_url}/api/v2/community/posts/{post_id}/votes.json?sort_by=created_at"

    def users_url(self, ids: Sequence[int]) -> str:
        return f"{self.base_url}/api/v2/users/show_many.json?ids={','.join(str(i) for i in ids)}"

    def iter_pages(self, url: str, key: str) -> Iterator[List[Dict[str, Any]]]:
        """
        Walk a paginated collection page by page.

        Stops when next_page is empty or null. A page that announces a next
        page but carries no item array is a malformed response, not an empty
        page.
        """
        page = 0
        next_url: Optional[str] = url

        while next_url:
            data = self._get(next_url, context=f"page {page} of {key}")

            items = data.get(key)
            next_page = data.get("next_page") or ""

            if items is None and next_page:
                raise MalformedResponseError(
                    f"{key} are not found on page {page} while next page is present ({next_url})"
                )
            if items is not None and not isinstance(items, list):
                raise MalformedResponseError(
                    f"unexpected {key} format on page {page} ({next_url}): {type(items).__name__}"
                )

            yield items or []

            next_url = next_page
            page += 1

    def fetch_collection(self, url: str, key: str) -> List[Dict[str, Any]]:
        """Concatenate every page of a collection, in page order."""
        items: List[Dict[str, Any]] = []
        for page_items in self.iter_pages(url, key):
            items.extend(page_items)
        return items

    def fetch_comments(self, post_id: int) -> List[Comment]:
        raw = self._fetch_for_post(self.comments_url(post_id), "comments", post_id)
        try:
            return [Comment.from_dict(item) for item in raw]
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedResponseError(f"cannot decode comment: {exc}, postID={post_id}") from exc

    def fetch_votes(self, post_id: int) -> List[Vote]:
        raw = self._fetch_for_post(self.votes_url(post_id), "votes", post_id)
        try:
            return [Vote.from_dict(item) for item in raw]
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedResponseError(f"cannot decode vote: {exc}, postID={post_id}") from exc

    def fetch_users(self, ids: Sequence[int]) -> List[User]:
        if not ids:
            return []
        data = self._get(self.users_url(ids), context=f"batch of {len(ids)} users")
        # No users array: none of these ids exist, they stay unresolved.
        users = data.get("users") or []
        if not isinstance(users, list):
            raise MalformedResponseError(
                f"unexpected users format in batch response for ids {list(ids)[:10]}: {type(users).__name__}"
            )
        try:
            return [User.from_dict(item) for item in users]
        except (KeyError, TypeError, ValueError) as exc:
            raise MalformedResponseError(f"cannot decode user in batch response: {exc}") from exc

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _fetch_for_post(self, url: str, key: str, post_id: int) -> List[Dict[str, Any]]:
        try:
            return self.fetch_collection(url, key)
        except MalformedResponseError as exc:
            raise MalformedResponseError(f"{exc}, postID={post_id}") from exc
        except TransportError as exc:
            raise TransportError(f"{exc}, postID={post_id}", status_code=exc.status_code) from exc

    def _get(self, url: str, context: str = "") -> Dict[str, Any]:
        """
        Single authenticated GET. No retries: retry policy is "rerun the tool".
        """
        logger.debug("GET %s", url)
        try:
            resp = self._session.get(url, timeout=self._cfg.timeout_seconds)
        except (requests.RequestException, OSError) as exc:
            raise TransportError(f"error while getting {context or url}: {exc}") from exc

        if resp.status_code != 200:
            raise TransportError(
                f"error while making request to {url}: {resp.status_code} - {resp.text[:500]}",
                status_code=resp.status_code,
            )

        try:
            data = resp.json()
        except ValueError as exc:
            raise MalformedResponseError(
                f"cannot decode response of {url} as json: {exc}, response: {resp.text[:500]}"
            ) from exc

        if not isinstance(data, dict):
            raise MalformedResponseError(f"unexpected response envelope from {url}: {type(data).__name__}")
        return data
