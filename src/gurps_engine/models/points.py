"""Points ledger entries."""

from __future__ import annotations

from datetime import UTC, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from gurps_engine.core.fixed import ZERO


class PointsRecord(BaseModel):
    """A single grant of character points.

    Attributes:
        when: Time of the grant (UTC).
        points: Points granted; negative to remove points.
        reason: Free-text explanation.
    """

    model_config = ConfigDict(extra="ignore", frozen=True)

    when: datetime = Field(default_factory=lambda: datetime.now(UTC))
    points: Decimal = ZERO
    reason: str = ""


def sort_records(records: list[PointsRecord]) -> list[PointsRecord]:
    """Newest first."""
    return sorted(records, key=lambda record: record.when, reverse=True)


def total_of(records: list[PointsRecord]) -> Decimal:
    return sum((record.points for record in records), ZERO)


__all__ = ["PointsRecord", "sort_records", "total_of"]
