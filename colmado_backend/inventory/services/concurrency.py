# inventory/services/concurrency.py

from __future__ import annotations

import logging
import time

from inventory.services.exceptions import ConcurrentModificationError

logger = logging.getLogger(__name__)


def run_with_retry(
    func,
    *,
    attempts: int = 3,
    backoff_base: float = 0.02,
    retry_on: tuple = (ConcurrentModificationError,),
):
    """
    Call func() until it stops raising a conflict, at most `attempts` times.

    func must be the WHOLE operation (fresh reads included) and must roll
    itself back on conflict, e.g. by running inside transaction.atomic().
    """
    attempts = max(1, int(attempts))
    for attempt in range(1, attempts + 1):
        try:
            return func()
        except retry_on as exc:
            if attempt >= attempts:
                logger.error(
                    "Giving up after concurrent modification",
                    extra={"attempts": attempts, "error": str(exc)},
                )
                raise
            logger.warning(
                "Concurrent modification, retrying",
                extra={"attempt": attempt, "error": str(exc)},
            )
            time.sleep(backoff_base * (2 ** (attempt - 1)))
