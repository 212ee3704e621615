# Overview: Transaction scope and retry helpers shared by the provisioning services.

from __future__ import annotations

import time
from contextlib import contextmanager

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import EmailAlreadyRegistered, ProvisioningError, SlugUnavailable, StoreAlreadyOwned


# constraint name / SQLite column text -> domain error
UNIQUE_VIOLATIONS = (
    (("uq_users_email_lower", "users.email"), EmailAlreadyRegistered),
    (("uq_stores_slug", "stores.slug"), SlugUnavailable),
    (("uq_stores_owner_id", "stores.owner_id"), StoreAlreadyOwned),
)


def translate_integrity_error(exc: IntegrityError) -> Exception:
    """
    Map a unique-constraint violation to the domain error it stands for.

    PostgreSQL reports the constraint name; SQLite reports either the index
    name (expression indexes) or "table.column". Both are matched, but only
    in unique-violation messages; NOT NULL and foreign key failures name the
    same columns. Anything unrecognised is returned unchanged so it surfaces
    as an internal error.
    """
    message = str(exc.orig)
    if "unique" not in message.lower():
        return exc
    for markers, error_cls in UNIQUE_VIOLATIONS:
        if any(marker in message for marker in markers):
            return error_cls()
    return exc


@contextmanager
def atomic(session):
    """
    One transaction around everything in the block.

    Commits on normal exit. On ANY exception the whole unit is rolled back
    (a failed store insert also undoes the user insert) and the exception is
    re-raised, with unique-constraint violations turned into domain errors.
    Commit and rollback both end the transaction, which hands the connection
    back to the pool on every exit path.
    """
    try:
        yield session
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        translated = translate_integrity_error(exc)
        if translated is exc:
            raise
        raise translated from exc
    except Exception:
        session.rollback()
        raise


def run_with_retry(func, *, session, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks, timeouts) and
    StaleDataError. Domain errors are never retried.
    """
    last_exc = None
    for attempt in range(attempts):
        try:
            return func()
        except ProvisioningError:
            raise
        except (OperationalError, StaleDataError) as exc:
            session.rollback()
            last_exc = exc
            if attempt >= attempts - 1:
                raise
            time.sleep(backoff_base * (2 ** attempt))
    if last_exc:
        raise last_exc
