"""Shared machinery for services over versioned entities.

Writes run in one transaction each and are retried when they lose a race
on the open version; reads run in a plain session.
"""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import TypeVar

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from mapping_portal.exceptions import StorageError, ValidationError, VersionConflictError
from mapping_portal.storage import Database
from mapping_portal.storage.models import VersionedMixin, as_utc, utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Path values that select the open version
LATEST_MARKERS = frozenset({"latest", "infinity"})

MAX_NAME_LENGTH = 200


@dataclass(frozen=True, slots=True)
class VersionSummary:
    """One row of a list or version-history response."""

    id: str
    name: str
    changed: datetime

    @classmethod
    def of(cls, row: VersionedMixin) -> "VersionSummary":
        return cls(id=row.id, name=row.name, changed=row.changed)


def parse_point_in_time(value: str | None) -> datetime | None:
    """Parse a version selector.

    Args:
        value: ISO 8601 timestamp, "latest"/"infinity", or None

    Returns:
        Aware UTC datetime, or None for the open version

    Raises:
        ValidationError: If the value is not a timestamp
    """
    if value is None or value.strip().lower() in LATEST_MARKERS:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError as e:
        raise ValidationError(f"Invalid timestamp: {value!r}") from e
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def next_instant(latest: VersionedMixin | None) -> datetime:
    """Timestamp for a transition that follows ``latest``.

    Normally the current time; never earlier than the end of the latest
    window, and strictly after the start of a still open one.
    """
    now = utcnow()
    if latest is None:
        return now
    if latest.valid_to is not None:
        floor = as_utc(latest.valid_to)
    else:
        floor = as_utc(latest.valid_from) + timedelta(microseconds=1)
    return max(now, floor)


def validate_name(name: str, kind: str) -> str:
    """Check an entity name and return it unchanged.

    Raises:
        ValidationError: Empty or over-long name
    """
    if not name or not name.strip():
        raise ValidationError(f"{kind} name must not be empty")
    if len(name) > MAX_NAME_LENGTH:
        raise ValidationError(f"{kind} name must be at most {MAX_NAME_LENGTH} characters")
    return name


class VersionedService:
    """Base class for services that read and write version histories."""

    def __init__(self, database: Database, *, max_attempts: int = 3):
        self.database = database
        self.max_attempts = max_attempts

    async def _write(
        self,
        operation: Callable[[AsyncSession], Awaitable[T]],
        *,
        description: str,
    ) -> T:
        """Run ``operation`` in a transaction, retrying on version conflicts.

        A conflict is a guarded close that matched no row or a violation of
        the one-open-row unique index. The transaction is rolled back and
        the whole operation is repeated, which serializes it after the
        concurrent writer.

        Raises:
            VersionConflictError: If every attempt conflicted
            StorageError: On any other database failure
        """
        for attempt in range(1, self.max_attempts + 1):
            try:
                async with self.database.transaction() as session:
                    return await operation(session)
            except (VersionConflictError, IntegrityError) as e:
                if attempt >= self.max_attempts:
                    raise VersionConflictError(
                        f"{description} kept conflicting with concurrent writes"
                    ) from e
                logger.info(
                    "%s conflicted (attempt %d/%d), retrying",
                    description,
                    attempt,
                    self.max_attempts,
                )
            except SQLAlchemyError as e:
                raise StorageError(f"{description} failed: {e}") from e
        raise VersionConflictError(f"{description} was not attempted")

    async def _read(self, operation: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """Run a read-only ``operation`` in its own session."""
        try:
            async with self.database.session() as session:
                return await operation(session)
        except SQLAlchemyError as e:
            raise StorageError(f"Read failed: {e}") from e
