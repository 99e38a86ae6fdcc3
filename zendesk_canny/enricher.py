# zendesk_canny/enricher.py
from __future__ import annotations

import logging
import queue
import threading
from typing import Any, Iterator, List, Optional

from .clients.zendesk_client import SourceClient
from .errors import FetchError
from .models import Post

logger = logging.getLogger(__name__)


class _Closed:
    """End-of-stream marker put on a queue once its producers are done."""

    def __repr__(self) -> str:
        return "<closed>"


CLOSED = _Closed()


def iter_queue(q: "queue.Queue[Any]") -> Iterator[Any]:
    """Yield items from a queue until its CLOSED marker arrives."""
    while True:
        item = q.get()
        if item is CLOSED:
            return
        yield item


def enrich_post(client: SourceClient, post: Post) -> Post:
    """
    Load the comments and votes of a single post.

    Sub-collections are only requested when the listing declared a
    non-zero count for them. Any FetchError propagates and the post is
    left without children.
    """
    comments = client.fetch_comments(post.id) if post.comment_count > 0 else []
    votes = client.fetch_votes(post.id) if post.vote_count > 0 else []

    post.comments = comments
    post.votes = votes
    return post


class DetailsLoader:
    """
    Fixed-size pool of worker threads enriching posts with their details.

    Input:
        posts pushed with submit(); close() signals that no more will come.

    Output streams (queue.Queue, each terminated by CLOSED):
        results   - enriched posts, in completion order (not input order)
        errors    - FetchError per post whose comments/votes failed to load
        user_ids  - every author / commenter / voter id encountered

    A post whose details fail is not emitted to results, so it is never
    migrated in this run and gets picked up again on the next one.

    The output streams are closed only after every worker has exited, so a
    reader never sees CLOSED while a worker may still write.
    """

    def __init__(self, client: SourceClient, parallelism: int = 10) -> None:
        if parallelism < 1:
            raise ValueError(f"parallelism must be at least 1, got {parallelism}")
        self._client = client
        self._parallelism = parallelism

        self.input: "queue.Queue[Any]" = queue.Queue(maxsize=parallelism)
        self.results: "queue.Queue[Any]" = queue.Queue()
        self.errors: "queue.Queue[Any]" = queue.Queue()
        self.user_ids: "queue.Queue[Any]" = queue.Queue()

        self._workers: List[threading.Thread] = []
        self._closer: Optional[threading.Thread] = None
        self._input_closed = False

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> "DetailsLoader":
        for idx in range(self._parallelism):
            worker = threading.Thread(
                target=self._work,
                name=f"details-loader-{idx}",
                daemon=True,
            )
            worker.start()
            self._workers.append(worker)

        self._closer = threading.Thread(target=self._close_outputs, name="details-loader-closer", daemon=True)
        self._closer.start()
        return self

    def submit(self, post: Post) -> None:
        if self._input_closed:
            raise RuntimeError("cannot submit to a closed DetailsLoader")
        self.input.put(post)

    def close(self) -> None:
        """No more input. One CLOSED marker per worker so each one stops."""
        if self._input_closed:
            return
        self._input_closed = True
        for _ in self._workers:
            self.input.put(CLOSED)

    def join(self) -> None:
        """Wait until every worker exited and the output streams are closed."""
        if self._closer is not None:
            self._closer.join()

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _close_outputs(self) -> None:
        for worker in self._workers:
            worker.join()
        self.errors.put(CLOSED)
        self.user_ids.put(CLOSED)
        self.results.put(CLOSED)

    def _work(self) -> None:
        for post in iter_queue(self.input):
            try:
                enrich_post(self._client, post)
            except FetchError as exc:
                self.errors.put(exc)
                continue
            except Exception as exc:
                logger.exception("Unexpected error while loading details of post %s", post.id)
                self.errors.put(exc)
                continue

            for user_id in post.user_ids():
                self.user_ids.put(user_id)

            self.results.put(post)
