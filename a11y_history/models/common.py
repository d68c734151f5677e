from datetime import UTC, datetime

from pydantic import ConfigDict
from pydantic.alias_generators import to_camel


def _utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(UTC)


def _ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so stored timestamps stay comparable."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


# Persisted models keep the camelCase field names of the history blob.
CAMEL_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True)
FROZEN_CAMEL_CONFIG = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)
