"""Unit tests for the shared versioning machinery.

Covers version selectors, transition timestamps and the retry loop that
serializes writers which lost a race on the open version.
"""

from datetime import UTC, datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from mapping_portal.exceptions import StorageError, ValidationError, VersionConflictError
from mapping_portal.services.versioning import (
    MAX_NAME_LENGTH,
    VersionedService,
    next_instant,
    parse_point_in_time,
    validate_name,
)
from mapping_portal.storage import Database


class TestParsePointInTime:
    @pytest.mark.parametrize("value", [None, "latest", "infinity", " LATEST "])
    def test_latest_markers(self, value):
        assert parse_point_in_time(value) is None

    def test_aware_timestamp_converted_to_utc(self):
        parsed = parse_point_in_time("2024-03-01T12:00:00+02:00")
        assert parsed == datetime(2024, 3, 1, 10, 0, tzinfo=UTC)

    def test_zulu_suffix(self):
        assert parse_point_in_time("2024-03-01T10:00:00Z") == datetime(2024, 3, 1, 10, 0, tzinfo=UTC)

    def test_naive_timestamp_taken_as_utc(self):
        parsed = parse_point_in_time("2024-03-01T10:00:00.250000")
        assert parsed == datetime(2024, 3, 1, 10, 0, 0, 250000, tzinfo=UTC)

    def test_garbage_rejected(self):
        with pytest.raises(ValidationError):
            parse_point_in_time("yesterday")


class TestNextInstant:
    def test_without_history_uses_now(self):
        before = datetime.now(UTC)
        assert next_instant(None) >= before

    def test_after_open_row_from_the_future(self):
        start = datetime.now(UTC) + timedelta(hours=1)
        latest = SimpleNamespace(valid_from=start, valid_to=None)

        assert next_instant(latest) == start + timedelta(microseconds=1)

    def test_not_before_end_of_closed_row(self):
        end = datetime.now(UTC) + timedelta(hours=1)
        latest = SimpleNamespace(valid_from=end - timedelta(days=1), valid_to=end)

        assert next_instant(latest) == end

    def test_naive_values_read_as_utc(self):
        start = (datetime.now(UTC) + timedelta(hours=1)).replace(tzinfo=None)
        latest = SimpleNamespace(valid_from=start, valid_to=None)

        result = next_instant(latest)

        assert result.tzinfo is not None
        assert result == start.replace(tzinfo=UTC) + timedelta(microseconds=1)

    def test_other_offsets_normalized(self):
        start = datetime.now(timezone(timedelta(hours=5))) + timedelta(hours=1)
        latest = SimpleNamespace(valid_from=start, valid_to=None)

        assert next_instant(latest) > start


class TestValidateName:
    def test_valid_name_returned_unchanged(self):
        assert validate_name(" spaced name ", "Project") == " spaced name "

    @pytest.mark.parametrize("name", ["", "   "])
    def test_blank_rejected(self, name):
        with pytest.raises(ValidationError, match="Project name"):
            validate_name(name, "Project")

    def test_too_long_rejected(self):
        with pytest.raises(ValidationError):
            validate_name("n" * (MAX_NAME_LENGTH + 1), "Script")


class TestWriteRetry:
    async def test_conflict_is_retried(self, database: Database):
        service = VersionedService(database, max_attempts=3)
        attempts = []

        async def op(session):
            attempts.append(session)
            if len(attempts) == 1:
                raise VersionConflictError("lost the race")
            return "saved"

        assert await service._write(op, description="Saving") == "saved"
        assert len(attempts) == 2

    async def test_integrity_error_is_retried(self, database: Database):
        service = VersionedService(database, max_attempts=2)
        attempts = []

        async def op(session):
            attempts.append(session)
            if len(attempts) == 1:
                raise IntegrityError("INSERT", {}, Exception("unique violation"))
            return 1

        assert await service._write(op, description="Saving") == 1
        assert len(attempts) == 2

    async def test_gives_up_after_max_attempts(self, database: Database):
        service = VersionedService(database, max_attempts=3)
        attempts = []

        async def op(session):
            attempts.append(session)
            raise VersionConflictError("lost again")

        with pytest.raises(VersionConflictError, match="kept conflicting"):
            await service._write(op, description="Saving project 'p'")
        assert len(attempts) == 3

    async def test_other_database_errors_become_storage_errors(self, database: Database):
        service = VersionedService(database, max_attempts=3)
        attempts = []

        async def op(session):
            attempts.append(session)
            raise OperationalError("SELECT", {}, Exception("disk I/O error"))

        with pytest.raises(StorageError) as exc_info:
            await service._write(op, description="Saving")
        assert not isinstance(exc_info.value, VersionConflictError)
        assert len(attempts) == 1

    async def test_portal_errors_propagate(self, database: Database):
        service = VersionedService(database)

        async def op(session):
            raise ValidationError("bad input")

        with pytest.raises(ValidationError):
            await service._write(op, description="Saving")
