from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence

from .clients.zendesk_client import SourceClient
from .models import User

logger = logging.getLogger(__name__)

# Zendesk's users/show_many accepts at most 100 ids per call.
USER_BATCH_SIZE = 100


class UserCache:
    """
    Process-wide map of Zendesk user id -> User.

    A key present with a None value means the user is pending: either the
    batch load has not run yet or Zendesk did not return it. Consumers must
    treat a None entry as "no user".

    The cache has a single writer at a time: the collector's user-id drain
    thread claims ids while workers run, and the batch loader fills them in
    after every worker has joined. No lock is needed as long as that holds.
    """

    def __init__(self) -> None:
        self._users: Dict[int, Optional[User]] = {}

    def __contains__(self, user_id: int) -> bool:
        return user_id in self._users

    def __len__(self) -> int:
        return len(self._users)

    def claim(self, user_id: int) -> bool:
        """
        Mark a user id as pending.

        Returns True only the first time an id is seen, so each id is
        handed to the batch loader at most once per run.
        """
        if user_id in self._users:
            return False
        self._users[user_id] = None
        return True

    def forget(self, user_ids: Iterable[int]) -> None:
        """Drop still-pending claims so the ids can be claimed again."""
        for user_id in user_ids:
            if self._users.get(user_id) is None:
                self._users.pop(user_id, None)

    def get(self, user_id: int) -> Optional[User]:
        return self._users.get(user_id)

    def put(self, user: User) -> None:
        self._users[user.id] = user

    def unresolved(self) -> List[int]:
        return [uid for uid, user in self._users.items() if user is None]


def _batches(ids: Sequence[int], size: int) -> Iterable[Sequence[int]]:
    for start in range(0, len(ids), size):
        yield ids[start:start + size]


def load_users(
    client: SourceClient,
    ids: Sequence[int],
    cache: UserCache,
    batch_size: int = USER_BATCH_SIZE,
) -> int:
    """
    Fetch pending users in fixed-size batches and store them in the cache.

    ids must already be distinct and claimed in the cache. Ids missing from
    Zendesk's answer stay unresolved. Any FetchError propagates: the caller
    decides whether it is fatal.

    Returns the number of users resolved.
    """
    if not ids:
        return 0

    resolved = 0
    for idx, batch in enumerate(_batches(list(ids), batch_size), start=1):
        logger.debug("Loading user batch %d (%d ids)", idx, len(batch))
        for user in client.fetch_users(batch):
            cache.put(user)
            resolved += 1

    missing = len(ids) - resolved
    if missing > 0:
        logger.debug("%d of %d users were not returned by Zendesk", missing, len(ids))
    return resolved
