from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .clients.zendesk_client import SourceClient
from .enricher import DetailsLoader, iter_queue
from .errors import MalformedResponseError
from .models import Post
from .users import UserCache, load_users

logger = logging.getLogger(__name__)

PostCallback = Callable[[Post], None]
ErrorCallback = Callable[[Exception], None]


@dataclass
class CollectionResult:
    """
    Everything collected for one topic.

    posts are fully enriched and linked to their users, in the order the
    topic listing returned them. errors holds one entry per post whose
    details could not be loaded; those posts are not in posts.
    """

    topic: str
    posts: List[Post] = field(default_factory=list)
    errors: List[Exception] = field(default_factory=list)
    users_loaded: int = 0


class Collector:
    """
    Orchestrates collection of one topic at a time:

    1. page through the topic's posts and stream them into a DetailsLoader
    2. drain results / errors / user ids on three independent threads
    3. once the pool is joined, batch-load the users nobody asked for yet
    4. attach the resolved users to posts, comments and votes

    A failure while listing the posts themselves (or loading users) is
    raised to the caller: no partial post list is safe to migrate. Failures
    on a single post's details only end up in CollectionResult.errors.
    """

    def __init__(
        self,
        client: SourceClient,
        cache: Optional[UserCache] = None,
        parallelism: int = 10,
        on_post: Optional[PostCallback] = None,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self.client = client
        self.cache = cache if cache is not None else UserCache()
        self.parallelism = parallelism
        self._on_post = on_post
        self._on_error = on_error

    def collect_topic(self, topic: str) -> CollectionResult:
        result = CollectionResult(topic=topic)
        pending_users: List[int] = []
        listing_order: Dict[int, int] = {}

        loader = DetailsLoader(self.client, self.parallelism).start()

        drainers = [
            threading.Thread(target=self._drain_results, args=(loader, result), name="drain-results"),
            threading.Thread(target=self._drain_errors, args=(loader, result), name="drain-errors"),
            threading.Thread(target=self._drain_user_ids, args=(loader, pending_users), name="drain-user-ids"),
        ]
        for drainer in drainers:
            drainer.start()

        try:
            try:
                self._list_posts(topic, loader, listing_order)
            finally:
                # Always shut the pool down, even when listing failed, so no
                # thread outlives the topic.
                loader.close()
                loader.join()
                for drainer in drainers:
                    drainer.join()

            logger.debug(
                "Topic %s: %d posts enriched, %d failed, %d new users to load",
                topic,
                len(result.posts),
                len(result.errors),
                len(pending_users),
            )
            result.users_loaded = load_users(self.client, pending_users, self.cache)
            unknown = self.cache.unresolved()
            if unknown:
                logger.info("%d referenced users are unknown to Zendesk so far, e.g. %s", len(unknown), unknown[:5])
        except Exception:
            # Let a later topic ask for these users again.
            self.cache.forget(pending_users)
            raise

        link_users(result.posts, self.cache)

        # Workers finish in any order; migrate in listing order.
        result.posts.sort(key=lambda p: listing_order.get(p.id, len(listing_order)))
        return result

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _list_posts(self, topic: str, loader: DetailsLoader, listing_order: Dict[int, int]) -> None:
        for page in self.client.iter_pages(self.client.posts_url(topic), "posts"):
            for raw in page:
                try:
                    post = Post.from_dict(raw)
                except (KeyError, TypeError, ValueError) as exc:
                    raise MalformedResponseError(f"cannot decode post in topic {topic}: {exc}") from exc
                listing_order.setdefault(post.id, len(listing_order))
                loader.submit(post)

    def _drain_results(self, loader: DetailsLoader, result: CollectionResult) -> None:
        for post in iter_queue(loader.results):
            result.posts.append(post)
            if self._on_post is not None:
                self._on_post(post)

    def _drain_errors(self, loader: DetailsLoader, result: CollectionResult) -> None:
        for exc in iter_queue(loader.errors):
            result.errors.append(exc)
            if self._on_error is not None:
                self._on_error(exc)

    def _drain_user_ids(self, loader: DetailsLoader, pending: List[int]) -> None:
        # Sole writer of the cache while the pool is running.
        for user_id in iter_queue(loader.user_ids):
            if self.cache.claim(user_id):
                pending.append(user_id)


def link_users(posts: List[Post], cache: UserCache) -> None:
    """Fill Author / User references from the cache. Unresolved ids stay None."""
    for post in posts:
        post.author = cache.get(post.author_id)
        for comment in post.comments:
            comment.author = cache.get(comment.author_id)
        for vote in post.votes:
            vote.user = cache.get(vote.user_id)
