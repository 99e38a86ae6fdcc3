from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional

from .clients.canny_client import CreateComment, CreatePost, CreateVote, DestinationClient, FindOrCreateUser
from .clients.zendesk_client import SourceClient
from .collector import Collector
from .errors import CreationError, FetchError, LedgerError, MissingAuthorError
from .ledger import COMMENT, POST, VOTE, VOTE_CREATED, MigrationLedger
from .models import Comment, Post, User, Vote
from .sanitize import sanitize_html
from .users import UserCache

logger = logging.getLogger(__name__)


@dataclass
class TopicSummary:
    """Per-topic counters reported at the end of a topic."""

    topic: str
    board: str
    posts_migrated: int = 0  # posts fully walked (created now or earlier)
    failed: int = 0  # records that could not be migrated
    load_errors: int = 0  # posts whose comments/votes failed to load
    created_posts: int = 0
    created_comments: int = 0
    created_votes: int = 0
    skipped: int = 0  # records already in the ledger
    aborted: bool = False
    error: Optional[str] = None

    @property
    def created(self) -> int:
        return self.created_posts + self.created_comments + self.created_votes


class Migrator:
    """
    Drives the migration of Zendesk topics into Canny boards.

    For every topic: collect the enriched posts, then walk them in listing
    order and create what the ledger does not know yet:

    - post      -> keyed "post_<id>", skipped if ledgered
    - comments  -> each keyed "comment_<id>" on its own, even when the post
                   itself was migrated by an earlier run
    - votes     -> keyed "vote_<id>", only for votes with a resolved voter

    A missing author fails just that record. A record Canny rejects stops
    the rest of the topic; everything ledgered before it stays, so the next
    run resumes at the first unledgered record.
    """

    def __init__(
        self,
        source: SourceClient,
        destination: DestinationClient,
        ledger: MigrationLedger,
        topics: Mapping[str, str],
        default_user_id: str = "",
        agent_mapping: Optional[Mapping[int, str]] = None,
        parallelism: int = 10,
        verbose: bool = False,
        save_every_record: bool = False,
        cache: Optional[UserCache] = None,
    ) -> None:
        self.destination = destination
        self.ledger = ledger
        self.topics = dict(topics)
        self.default_user_id = default_user_id
        self.verbose = verbose
        self.save_every_record = save_every_record

        # Zendesk user id -> Canny user id. Agents are fixed up front and
        # never looked up; everybody else is added on first find-or-create.
        self._canny_users: Dict[int, str] = dict(agent_mapping or {})

        self.collector = Collector(
            source,
            cache=cache if cache is not None else UserCache(),
            parallelism=parallelism,
            on_post=self._log_loaded_post,
            on_error=self._log_load_error,
        )

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def migrate(self) -> List[TopicSummary]:
        """
        Migrate every configured topic, then save the ledger.

        The ledger is also saved when an unexpected error or an interrupt
        stops the run, so records already created in Canny are not created
        again by the next run. If a save fails the in-memory ledger is logged
        so it can be merged into the state file by hand, and LedgerError is
        raised.
        """
        summaries: List[TopicSummary] = []
        try:
            for topic, board in self.topics.items():
                summaries.append(self.migrate_topic(topic, board))
        except BaseException:
            try:
                self.save()
            except LedgerError:
                pass  # already logged with the full state; keep the original error
            raise

        self.save()
        return summaries

    def save(self) -> None:
        try:
            self.ledger.save()
        except LedgerError:
            logger.error(
                "Cannot save state file. Add the state below to the state file manually "
                "before repeating the operation:\n%s",
                self.ledger.dumps(),
            )
            raise

    def migrate_topic(self, topic: str, board: str) -> TopicSummary:
        summary = TopicSummary(topic=topic, board=board)
        logger.info(
            "Migrating topic '%s' to board '%s' (%d records already in state)",
            topic,
            board,
            len(self.ledger.topic(topic)),
        )

        try:
            collected = self.collector.collect_topic(topic)
        except FetchError as exc:
            logger.error("FATAL ERROR while loading posts for %s, skipping - %s", topic, exc)
            summary.aborted = True
            summary.error = str(exc)
            return summary

        summary.load_errors = len(collected.errors)
        logger.info("Loaded %d posts with %d errors", len(collected.posts), len(collected.errors))

        for post in collected.posts:
            try:
                self.migrate_post(post, topic, board, summary)
            except MissingAuthorError as exc:
                summary.failed += 1
                logger.warning("\tSkipping post '%s' (%d): %s", post.title, post.id, exc)
                continue
            except CreationError as exc:
                summary.failed += 1
                summary.aborted = True
                summary.error = str(exc)
                logger.error(
                    "\tError while creating Canny records from Zendesk post %d '%s', "
                    "stopping topic '%s': %s",
                    post.id,
                    post.title,
                    topic,
                    exc,
                )
                break

            summary.posts_migrated += 1
            if self.verbose:
                logger.info("\tMigrated post '%s'", post.title)

        logger.info(
            "Migrated topic '%s' to board '%s': %d posts, %d errors "
            "(created %d posts, %d comments, %d votes; %d already migrated)%s",
            topic,
            board,
            summary.posts_migrated,
            summary.failed + summary.load_errors,
            summary.created_posts,
            summary.created_comments,
            summary.created_votes,
            summary.skipped,
            " - ABORTED" if summary.aborted else "",
        )
        return summary

    def migrate_post(self, post: Post, topic: str, board: str, summary: TopicSummary) -> None:
        """
        Create one post and its children unless ledgered.

        Raises MissingAuthorError when the post itself has no author, and
        CreationError for any rejected record.
        """
        post_id = self.ledger.get(topic, POST, post.id)
        if post_id:
            summary.skipped += 1
            if self.verbose:
                logger.info("\tPost '%s' is found in state - skipping", post.title)
        else:
            post_id = self._create_post(post, board)
            self._record(topic, POST, post.id, post_id)
            summary.created_posts += 1

        for comment in post.comments:
            if self.ledger.get(topic, COMMENT, comment.id):
                summary.skipped += 1
                if self.verbose:
                    logger.info("\tComment %d is found in state - skipping", comment.id)
                continue
            try:
                comment_id = self._create_comment(comment, post_id)
            except MissingAuthorError as exc:
                summary.failed += 1
                logger.warning("\tSkipping comment %d of post %d: %s", comment.id, post.id, exc)
                continue
            self._record(topic, COMMENT, comment.id, comment_id)
            summary.created_comments += 1

        for vote in post.votes:
            if vote.user is None:
                # Voter unknown to Zendesk: nothing to attribute the vote to.
                continue
            if self.ledger.get(topic, VOTE, vote.id):
                summary.skipped += 1
                continue
            self._create_vote(vote, post_id)
            self._record(topic, VOTE, vote.id, VOTE_CREATED)
            summary.created_votes += 1

    def resolve_user(self, user: Optional[User], kind: str) -> str:
        """
        Canny user id for a Zendesk user.

        No user -> the default user, or MissingAuthorError if there is none.
        Otherwise agent mapping first, then Canny find-or-create, cached by
        Zendesk id for the rest of the run.
        """
        if user is None:
            if not self.default_user_id:
                raise MissingAuthorError(f"{kind} doesn't have a user and default user is not specified")
            return self.default_user_id
        return self.find_or_create_user(user)

    def find_or_create_user(self, user: User) -> str:
        known = self._canny_users.get(user.id)
        if known:
            return known

        canny_id = self.destination.find_or_create_user(
            FindOrCreateUser(
                name=user.name,
                email=user.email,
                user_id=user.external_id,
                created=user.created_at.isoformat() if user.created_at else None,
            )
        )
        self._canny_users[user.id] = canny_id
        return canny_id

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _create_post(self, post: Post, board: str) -> str:
        author_id = self.resolve_user(post.author, "post")
        return self.destination.create_post(
            CreatePost(
                author_id=author_id,
                board_id=board,
                details=sanitize_html(post.details),
                title=sanitize_html(post.title),
            )
        )

    def _create_comment(self, comment: Comment, post_id: str) -> str:
        author_id = self.resolve_user(comment.author, "comment")
        return self.destination.create_comment(
            CreateComment(author_id=author_id, post_id=post_id, value=sanitize_html(comment.body))
        )

    def _create_vote(self, vote: Vote, post_id: str) -> None:
        voter_id = self.resolve_user(vote.user, "vote")
        self.destination.create_vote(CreateVote(post_id=post_id, voter_id=voter_id))

    def _record(self, topic: str, kind: str, record_id: int, destination_id: str) -> None:
        self.ledger.put(topic, kind, record_id, destination_id)
        if not self.save_every_record:
            return
        try:
            self.ledger.save()
        except LedgerError as exc:
            # The end-of-run save tries again and reports the full state.
            logger.warning("Incremental state save failed: %s", exc)

    def _log_loaded_post(self, post: Post) -> None:
        if self.verbose:
            logger.info(
                "\tLoaded post %d: '%s' with %d comments and %d votes",
                post.id,
                post.title,
                len(post.comments),
                len(post.votes),
            )

    def _log_load_error(self, exc: Exception) -> None:
        logger.warning("\tError: %s", exc)
