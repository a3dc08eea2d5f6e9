"""
Weather data CRUD operations.

This module contains CRUD operations for stations, observations and daily
summaries. All datetimes passed in are normalised to UTC before binding.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, desc, func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from valleywx.crud.base import CRUDBase, dialect_insert
from valleywx.models.daily_summary import DailySummary
from valleywx.models.observation import CLEAN_QC_STATUSES, Observation
from valleywx.models.station import Station
from valleywx.schemas.weather import ObservationCreate
from valleywx.utils.errors import NoPrimaryStationError, StationNotFoundError
from valleywx.utils.logging_config import get_logger
from valleywx.utils.quality import validate_observation
from valleywx.utils.timeutils import as_utc, utc_now

logger = get_logger(__name__)


def clean_readings():
    """SQL counterpart of `quality.is_clean`: no flags and a valid or verified QC status."""
    return and_(
        Observation.quality_flags.is_(None),
        Observation.qc_status.in_(CLEAN_QC_STATUSES),
    )


@dataclass
class DayExtremes:
    """Observed extremes for a station over a period."""

    temp_max: Optional[float] = None
    temp_min: Optional[float] = None
    wind_gust: Optional[float] = None
    precip_total: Optional[float] = None


class CRUDStation(CRUDBase[Station, dict]):
    """
    CRUD operations for Station model.
    """

    async def get_by_code(self, db: AsyncSession, *, code: str) -> Optional[Station]:
        """
        Get station by code.

        Args:
            db: Database session
            code: Upstream station code

        Returns:
            Station instance or None if not found
        """
        result = await db.execute(
            select(Station).where(Station.code == code)
        )
        return result.scalars().first()

    async def get_active(self, db: AsyncSession) -> List[Station]:
        result = await db.execute(
            select(Station).where(Station.active.is_(True)).order_by(Station.code)
        )
        return result.scalars().all()

    async def get_by_tier(self, db: AsyncSession, *, tier: str) -> List[Station]:
        result = await db.execute(
            select(Station)
            .where(and_(Station.elevation_tier == tier, Station.active.is_(True)))
            .order_by(Station.code)
        )
        return result.scalars().all()

    async def get_primary(self, db: AsyncSession) -> Optional[Station]:
        """
        Get the primary (ground-truth) station.

        Returns:
            The active station flagged primary, or None if none is configured
        """
        result = await db.execute(
            select(Station)
            .where(and_(Station.is_primary.is_(True), Station.active.is_(True)))
            .limit(1)
        )
        return result.scalars().first()

    async def require_primary(self, db: AsyncSession) -> Station:
        primary = await self.get_primary(db)
        if primary is None:
            raise NoPrimaryStationError("No active primary station configured")
        return primary

    async def set_primary(self, db: AsyncSession, *, code: str) -> Station:
        """
        Make one station the primary, clearing the flag on every other station.

        Both changes are committed in the same transaction.

        Args:
            db: Database session
            code: Station code to promote

        Returns:
            The promoted Station

        Raises:
            StationNotFoundError: If no station has that code
        """
        target = await self.get_by_code(db, code=code)
        if target is None:
            raise StationNotFoundError(code)

        await db.execute(
            update(Station).where(Station.id != target.id).values(is_primary=False)
        )
        target.is_primary = True
        target.active = True
        await db.commit()
        await db.refresh(target)
        return target


class CRUDObservation(CRUDBase[Observation, dict]):
    """
    CRUD operations for Observation model.
    """

    async def insert_ignore(self, db: AsyncSession, *, obj_in: Dict[str, Any]) -> bool:
        """
        Insert an observation, ignoring duplicates on (station_id, observed_at).

        Args:
            db: Database session
            obj_in: Observation fields

        Returns:
            True if a row was inserted
        """
        data = dict(obj_in)
        data["observed_at"] = as_utc(data["observed_at"])
        stmt = (
            dialect_insert(db, Observation)
            .values(**data)
            .on_conflict_do_nothing(index_elements=["station_id", "observed_at"])
        )
        result = await db.execute(stmt)
        await db.commit()
        return result.rowcount > 0

    async def ingest(self, db: AsyncSession, *, obj_in: ObservationCreate) -> bool:
        """
        Quality-check and store an observation from an ingestion client.

        Range-check failures are stored as quality flags, not rejected.

        Args:
            db: Database session
            obj_in: Validated observation payload

        Returns:
            True if a new row was inserted
        """
        data = obj_in.model_dump()
        flags = validate_observation(data)
        if flags:
            logger.warning(
                f"Observation for station {obj_in.station_id} at {obj_in.observed_at} flagged: {flags}"
            )
        data["quality_flags"] = flags or None
        return await self.insert_ignore(db, obj_in=data)

    async def get_latest_for_station(
        self, db: AsyncSession, *, station_id: int
    ) -> Optional[Observation]:
        """
        Get the latest observation for a station.

        Args:
            db: Database session
            station_id: Station ID

        Returns:
            Latest Observation instance or None
        """
        result = await db.execute(
            select(Observation)
            .where(Observation.station_id == station_id)
            .order_by(desc(Observation.observed_at))
            .limit(1)
        )
        return result.scalars().first()

    async def get_observations_in_range(
        self,
        db: AsyncSession,
        *,
        station_id: int,
        start: datetime,
        end: datetime,
    ) -> List[Observation]:
        """
        Get observations for a station in the half-open range [start, end).

        Args:
            db: Database session
            station_id: Station ID
            start: Start instant (inclusive)
            end: End instant (exclusive)

        Returns:
            List of Observation instances ordered by time
        """
        result = await db.execute(
            select(Observation)
            .where(
                and_(
                    Observation.station_id == station_id,
                    Observation.observed_at >= as_utc(start),
                    Observation.observed_at < as_utc(end)
                )
            )
            .order_by(Observation.observed_at)
        )
        return result.scalars().all()

    async def get_extremes(
        self,
        db: AsyncSession,
        *,
        station_id: int,
        start: datetime,
        end: datetime,
    ) -> DayExtremes:
        """
        Max/min temperature, peak gust and precipitation total over [start, end)
        from clean readings only.

        `precip_total` is an accumulating counter, so its maximum is the
        period total.
        """
        result = await db.execute(
            select(
                func.max(Observation.temperature),
                func.min(Observation.temperature),
                func.max(Observation.wind_gust),
                func.max(Observation.precip_total),
            ).where(
                and_(
                    Observation.station_id == station_id,
                    Observation.observed_at >= as_utc(start),
                    Observation.observed_at < as_utc(end),
                    clean_readings(),
                )
            )
        )
        temp_max, temp_min, gust, precip = result.one()
        return DayExtremes(temp_max=temp_max, temp_min=temp_min, wind_gust=gust, precip_total=precip)

    async def get_overnight_min_by_tier(
        self,
        db: AsyncSession,
        *,
        start: datetime,
        end: datetime,
    ) -> Dict[str, float]:
        """
        Minimum temperature per elevation tier across active stations.

        Returns:
            Mapping of tier name to minimum temperature; tiers without
            readings are absent
        """
        result = await db.execute(
            select(Station.elevation_tier, func.min(Observation.temperature))
            .join(Station, Observation.station_id == Station.id)
            .where(
                and_(
                    Station.active.is_(True),
                    Observation.temperature.is_not(None),
                    Observation.observed_at >= as_utc(start),
                    Observation.observed_at < as_utc(end),
                    clean_readings(),
                )
            )
            .group_by(Station.elevation_tier)
        )
        return {tier: temp for tier, temp in result.all()}

    async def get_temp_change_rate(
        self,
        db: AsyncSession,
        *,
        station_id: int,
        now: Optional[datetime] = None,
    ) -> Optional[float]:
        """
        Hourly temperature change rate over the last hour.

        Compares the oldest reading in the last hour with the newest reading.

        Returns:
            Rate in °C/h, or None when there is under 15 minutes of data or
            the change is within ±0.2 °C/h
        """
        now = as_utc(now or utc_now())
        base = select(Observation.temperature, Observation.observed_at).where(
            and_(
                Observation.station_id == station_id,
                Observation.temperature.is_not(None),
                Observation.observed_at <= now
            )
        )

        oldest = (
            await db.execute(
                base.where(Observation.observed_at >= now - timedelta(hours=1))
                .order_by(Observation.observed_at)
                .limit(1)
            )
        ).first()
        newest = (
            await db.execute(base.order_by(desc(Observation.observed_at)).limit(1))
        ).first()
        if oldest is None or newest is None:
            return None

        hours = (as_utc(newest.observed_at) - as_utc(oldest.observed_at)).total_seconds() / 3600
        if hours < 0.25:
            return None

        rate = (newest.temperature - oldest.temperature) / hours
        if -0.2 < rate < 0.2:
            return None
        return rate


class CRUDDailySummary(CRUDBase[DailySummary, dict]):
    """
    CRUD operations for DailySummary model.
    """

    async def upsert(self, db: AsyncSession, *, obj_in: Dict[str, Any]) -> None:
        """
        Insert or replace the summary for (station_id, date).

        Args:
            db: Database session
            obj_in: Summary fields including station_id and date
        """
        stmt = dialect_insert(db, DailySummary).values(**obj_in)
        update_cols = {
            key: stmt.excluded[key]
            for key in obj_in
            if key not in ("station_id", "date")
        }
        update_cols["updated_at"] = func.now()
        stmt = stmt.on_conflict_do_update(
            index_elements=["station_id", "date"],
            set_=update_cols,
        )
        await db.execute(stmt)

    async def get_for_date(
        self, db: AsyncSession, *, station_id: int, day: date
    ) -> Optional[DailySummary]:
        result = await db.execute(
            select(DailySummary).where(
                and_(DailySummary.station_id == station_id, DailySummary.date == day)
            )
        )
        return result.scalars().first()

    async def get_previous(
        self, db: AsyncSession, *, station_id: int, before: date, limit: int = 2
    ) -> List[DailySummary]:
        """
        Summaries strictly before a date, most recent first.

        Only consecutive days count towards a heatwave, so the window is
        bounded to `limit` calendar days.
        """
        result = await db.execute(
            select(DailySummary)
            .where(
                and_(
                    DailySummary.station_id == station_id,
                    DailySummary.date < before,
                    DailySummary.date >= before - timedelta(days=limit)
                )
            )
            .order_by(desc(DailySummary.date))
        )
        return result.scalars().all()

    async def get_summaries_in_range(
        self,
        db: AsyncSession,
        *,
        station_id: int,
        start: date,
        end: Optional[date] = None,
    ) -> List[DailySummary]:
        """
        Summaries for a station with start <= date (<= end).

        Args:
            db: Database session
            station_id: Station ID
            start: First date (inclusive)
            end: Last date (inclusive), open-ended when None

        Returns:
            List of DailySummary instances ordered by date
        """
        conditions = [DailySummary.station_id == station_id, DailySummary.date >= start]
        if end is not None:
            conditions.append(DailySummary.date <= end)
        result = await db.execute(
            select(DailySummary).where(and_(*conditions)).order_by(DailySummary.date)
        )
        return result.scalars().all()

    async def get_regimes(
        self, db: AsyncSession, *, station_id: int, start: date
    ) -> Dict[date, str]:
        """Regime tag per date for a station, from `start` onwards."""
        result = await db.execute(
            select(DailySummary.date, DailySummary.regime).where(
                and_(
                    DailySummary.station_id == station_id,
                    DailySummary.date >= start,
                    DailySummary.regime.is_not(None)
                )
            )
        )
        return {day: regime for day, regime in result.all()}


# Create instances of CRUD classes
station = CRUDStation(Station)
observation = CRUDObservation(Observation)
daily_summary = CRUDDailySummary(DailySummary)
