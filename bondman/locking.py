"""
Allocation guard — per-part mutual exclusion around check-and-write.

Any operation that reads available-to-promise and then writes a
commitment runs inside allocation_guard(part_ids):

    with allocation_guard([part.pk for part in parts]):
        AllocationReservation.reserve(items)
        Preshipment.objects.create(...)

Concurrency:
    - Parts are locked in sorted order (no lock-order deadlocks)
    - Process-local locks are held across the whole transaction,
      including COMMIT, so a waiter always reads committed state
    - On PostgreSQL, pg_advisory_xact_lock(hashtext(key)) per part makes
      the guard hold across processes; released by COMMIT/ROLLBACK
    - OperationalError from lock contention surfaces as ConflictError
"""

import logging
import threading
from contextlib import ExitStack, contextmanager

from django.db import DEFAULT_DB_ALIAS, OperationalError, connections, transaction

from bondman.conf import bondman_settings
from bondman.exceptions import ConflictError

logger = logging.getLogger('bondman')

_registry_lock = threading.Lock()
_part_locks: dict[str, threading.RLock] = {}


def _process_lock(key: str) -> threading.RLock:
    with _registry_lock:
        lock = _part_locks.get(key)
        if lock is None:
            lock = _part_locks[key] = threading.RLock()
        return lock


def lock_key(part_id) -> str:
    return f"{bondman_settings.ADVISORY_LOCK_PREFIX}:part:{part_id}"


def _use_advisory(using: str) -> bool:
    strategy = bondman_settings.LOCK_STRATEGY
    vendor = connections[using].vendor
    if strategy == 'advisory' and vendor != 'postgresql':
        raise ValueError(
            f"LOCK_STRATEGY='advisory' needs PostgreSQL, got {vendor!r}"
        )
    return strategy in ('auto', 'advisory') and vendor == 'postgresql'


def _use_process(using: str) -> bool:
    return bondman_settings.LOCK_STRATEGY in ('auto', 'process')


def _advisory_lock(keys: list[str], using: str) -> None:
    with connections[using].cursor() as cursor:
        for key in keys:
            cursor.execute("SELECT pg_advisory_xact_lock(hashtext(%s))", [key])


@contextmanager
def allocation_guard(part_ids, using: str = DEFAULT_DB_ALIAS):
    """
    Serialize every check-and-write touching any of part_ids.

    Yields inside an open transaction.atomic() block.
    """
    keys = [lock_key(pk) for pk in sorted({str(pk) for pk in part_ids})]

    with ExitStack() as stack:
        if _use_process(using):
            for key in keys:
                stack.enter_context(_process_lock(key))

        try:
            with transaction.atomic(using=using):
                if _use_advisory(using):
                    _advisory_lock(keys, using)
                yield
        except OperationalError as exc:
            logger.warning(
                "allocation.guard.conflict",
                extra={"keys": keys, "error": str(exc)},
            )
            raise ConflictError(keys=keys) from exc
