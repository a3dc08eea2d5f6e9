"""
Forecast CRUD operations.

Raw provider forecasts, verification records, the bias store, displayed
forecast provenance and the nowcast log.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from statistics import mean
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import and_, desc, func, or_, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from valleywx.crud.base import CRUDBase, dialect_insert
from valleywx.models.correction_stat import CorrectionStat, StatEntry, StatsKey, StatsTable
from valleywx.models.daily_summary import DailySummary
from valleywx.models.displayed_forecast import DisplayedForecast
from valleywx.models.forecast import Forecast
from valleywx.models.nowcast_log import NowcastLog
from valleywx.models.verification import ForecastVerification
from valleywx.schemas.weather import ForecastCreate
from valleywx.utils.timeutils import as_utc, local_today, utc_now


@dataclass
class CorrectedAccuracy:
    """Accuracy of the displayed (corrected) forecasts against observed summaries."""

    count: int = 0
    avg_max_bias: Optional[float] = None
    avg_min_bias: Optional[float] = None
    mae_max: Optional[float] = None
    mae_min: Optional[float] = None


class CRUDForecast(CRUDBase[Forecast, dict]):
    """
    CRUD operations for Forecast model.
    """

    async def insert_ignore(self, db: AsyncSession, *, obj_in: Dict[str, Any]) -> bool:
        """
        Insert a forecast, ignoring duplicates on (source, fetched_at, valid_date).

        Returns:
            True if a row was inserted
        """
        data = dict(obj_in)
        data["fetched_at"] = as_utc(data["fetched_at"])
        stmt = (
            dialect_insert(db, Forecast)
            .values(**data)
            .on_conflict_do_nothing(index_elements=["source", "fetched_at", "valid_date"])
        )
        result = await db.execute(stmt)
        await db.commit()
        return result.rowcount > 0

    async def ingest(self, db: AsyncSession, *, obj_in: ForecastCreate) -> bool:
        """Store a validated provider forecast; repeats of the same fetch are ignored."""
        return await self.insert_ignore(db, obj_in=obj_in.model_dump())

    async def get_for_valid_date(self, db: AsyncSession, *, valid_date: date) -> List[Forecast]:
        """
        All forecasts predicting a date, newest fetch first.

        Args:
            db: Database session
            valid_date: Local calendar date predicted

        Returns:
            List of Forecast instances
        """
        result = await db.execute(
            select(Forecast)
            .where(Forecast.valid_date == valid_date)
            .order_by(desc(Forecast.fetched_at), desc(Forecast.id))
        )
        return result.scalars().all()

    async def get_latest_for_date(
        self, db: AsyncSession, *, valid_date: date, source: str
    ) -> Optional[Forecast]:
        """
        Most recent fetch from one provider for a date that carries temperatures.

        A later fetch with empty temperatures does not hide an earlier usable one.
        """
        result = await db.execute(
            select(Forecast)
            .where(
                and_(
                    Forecast.valid_date == valid_date,
                    Forecast.source == source,
                    or_(Forecast.temp_max.is_not(None), Forecast.temp_min.is_not(None))
                )
            )
            .order_by(desc(Forecast.fetched_at), desc(Forecast.id))
            .limit(1)
        )
        return result.scalars().first()


class CRUDVerification(CRUDBase[ForecastVerification, dict]):
    """
    CRUD operations for ForecastVerification model.
    """

    async def has_for_date(self, db: AsyncSession, *, valid_date: date) -> bool:
        result = await db.execute(
            select(func.count(ForecastVerification.id)).where(
                ForecastVerification.valid_date == valid_date
            )
        )
        return result.scalar_one() > 0

    async def get_for_date(self, db: AsyncSession, *, valid_date: date) -> List[ForecastVerification]:
        result = await db.execute(
            select(ForecastVerification)
            .where(ForecastVerification.valid_date == valid_date)
            .order_by(ForecastVerification.source)
        )
        return result.scalars().all()

    async def get_since(self, db: AsyncSession, *, start: date) -> List[ForecastVerification]:
        """
        Verification records with valid_date >= start.

        Args:
            db: Database session
            start: First valid date in the window

        Returns:
            List of ForecastVerification instances
        """
        result = await db.execute(
            select(ForecastVerification)
            .where(ForecastVerification.valid_date >= start)
            .order_by(ForecastVerification.valid_date, ForecastVerification.source)
        )
        return result.scalars().all()


class CRUDCorrectionStat(CRUDBase[CorrectionStat, dict]):
    """
    CRUD operations for the bias store.
    """

    async def get_table(self, db: AsyncSession) -> StatsTable:
        """
        Load every bias store row into an in-memory table.

        Returns:
            Mapping of StatsKey to StatEntry
        """
        result = await db.execute(select(CorrectionStat))
        return {
            StatsKey(row.source, row.target, row.day_of_forecast, row.regime): StatEntry(
                sample_size=row.sample_size,
                mean_bias=row.mean_bias,
                mae=row.mae,
            )
            for row in result.scalars().all()
        }

    async def get_all(self, db: AsyncSession) -> List[CorrectionStat]:
        result = await db.execute(
            select(CorrectionStat).order_by(
                CorrectionStat.source,
                CorrectionStat.target,
                CorrectionStat.regime,
                CorrectionStat.day_of_forecast,
            )
        )
        return result.scalars().all()

    async def upsert_many(
        self,
        db: AsyncSession,
        *,
        entries: Iterable[Dict[str, Any]],
        updated_at: Optional[datetime] = None,
    ) -> int:
        """
        Overwrite bias store rows by key, committing once at the end.

        Each row is a single INSERT ... ON CONFLICT DO UPDATE, so a reader
        never sees a sample size paired with a stale mean.

        Args:
            db: Database session
            entries: Rows with source, target, day_of_forecast, regime,
                window_days, sample_size, mean_bias and mae
            updated_at: Timestamp to record (defaults to now)

        Returns:
            Number of rows written
        """
        updated_at = as_utc(updated_at or utc_now())
        written = 0
        try:
            for entry in entries:
                stmt = dialect_insert(db, CorrectionStat).values(**entry, updated_at=updated_at)
                stmt = stmt.on_conflict_do_update(
                    index_elements=["source", "target", "day_of_forecast", "regime"],
                    set_={
                        "window_days": stmt.excluded.window_days,
                        "sample_size": stmt.excluded.sample_size,
                        "mean_bias": stmt.excluded.mean_bias,
                        "mae": stmt.excluded.mae,
                        "updated_at": stmt.excluded.updated_at,
                    },
                )
                await db.execute(stmt)
                written += 1
            await db.commit()
        except Exception:
            await db.rollback()
            raise
        return written


class CRUDDisplayedForecast(CRUDBase[DisplayedForecast, dict]):
    """
    CRUD operations for the provenance log.
    """

    async def upsert(self, db: AsyncSession, *, obj_in: Dict[str, Any]) -> None:
        """
        Record a displayed forecast keyed by (valid_date, day_of_forecast).

        A later display of the same day replaces the earlier explanation.

        Args:
            db: Database session
            obj_in: DisplayedForecast fields
        """
        data = dict(obj_in)
        data["displayed_at"] = as_utc(data["displayed_at"])
        stmt = dialect_insert(db, DisplayedForecast).values(**data)
        update_cols = {
            key: stmt.excluded[key]
            for key in data
            if key not in ("valid_date", "day_of_forecast")
        }
        update_cols["updated_at"] = func.now()
        stmt = stmt.on_conflict_do_update(
            index_elements=["valid_date", "day_of_forecast"],
            set_=update_cols,
        )
        await db.execute(stmt)
        await db.commit()

    async def get_for_date(self, db: AsyncSession, *, valid_date: date) -> List[DisplayedForecast]:
        result = await db.execute(
            select(DisplayedForecast)
            .where(DisplayedForecast.valid_date == valid_date)
            .order_by(DisplayedForecast.day_of_forecast)
        )
        return result.scalars().all()

    async def corrected_accuracy(
        self,
        db: AsyncSession,
        *,
        station_id: int,
        days: int = 30,
        today: Optional[date] = None,
    ) -> CorrectedAccuracy:
        """
        Score the displayed forecasts against a station's daily summaries.

        Only the most recently displayed record per valid date counts, and
        only dates where both corrected and observed max and min exist.

        Args:
            db: Database session
            station_id: Ground-truth station
            days: Window length in days
            today: Window end (defaults to the local date)

        Returns:
            CorrectedAccuracy
        """
        today = today or local_today()
        start = today - timedelta(days=days)

        displayed = await db.execute(
            select(DisplayedForecast)
            .where(DisplayedForecast.valid_date >= start)
            .order_by(DisplayedForecast.valid_date, desc(DisplayedForecast.displayed_at))
        )
        latest: Dict[date, DisplayedForecast] = {}
        for row in displayed.scalars().all():
            latest.setdefault(row.valid_date, row)

        summaries = await db.execute(
            select(DailySummary).where(
                and_(DailySummary.station_id == station_id, DailySummary.date >= start)
            )
        )
        actuals = {s.date: s for s in summaries.scalars().all()}

        max_errors, min_errors = [], []
        for valid_date, shown in latest.items():
            actual = actuals.get(valid_date)
            if actual is None:
                continue
            if None in (shown.corrected_temp_max, shown.corrected_temp_min, actual.temp_max, actual.temp_min):
                continue
            max_errors.append(shown.corrected_temp_max - actual.temp_max)
            min_errors.append(shown.corrected_temp_min - actual.temp_min)

        if not max_errors:
            return CorrectedAccuracy()

        return CorrectedAccuracy(
            count=len(max_errors),
            avg_max_bias=mean(max_errors),
            avg_min_bias=mean(min_errors),
            mae_max=mean(abs(e) for e in max_errors),
            mae_min=mean(abs(e) for e in min_errors),
        )


class CRUDNowcastLog(CRUDBase[NowcastLog, dict]):
    """
    CRUD operations for NowcastLog model.
    """

    async def upsert(self, db: AsyncSession, *, obj_in: Dict[str, Any]) -> None:
        """Insert or replace the nowcast for (date, station_id)."""
        stmt = dialect_insert(db, NowcastLog).values(**obj_in)
        update_cols = {
            key: stmt.excluded[key]
            for key in obj_in
            if key not in ("date", "station_id")
        }
        update_cols["updated_at"] = func.now()
        stmt = stmt.on_conflict_do_update(
            index_elements=["date", "station_id"],
            set_=update_cols,
        )
        await db.execute(stmt)
        await db.commit()

    async def get_for_date(
        self, db: AsyncSession, *, station_id: int, day: date
    ) -> Optional[NowcastLog]:
        result = await db.execute(
            select(NowcastLog).where(
                and_(NowcastLog.station_id == station_id, NowcastLog.date == day)
            )
        )
        return result.scalars().first()

    async def update_actual_max(
        self, db: AsyncSession, *, station_id: int, day: date, actual_max: float
    ) -> int:
        """
        Back-fill the observed max once the day is over.

        Returns:
            Number of rows updated (0 when no nowcast ran that day)
        """
        result = await db.execute(
            update(NowcastLog)
            .where(and_(NowcastLog.station_id == station_id, NowcastLog.date == day))
            .values(actual_max=actual_max)
        )
        await db.commit()
        return result.rowcount


# Create instances of CRUD classes
forecast = CRUDForecast(Forecast)
verification = CRUDVerification(ForecastVerification)
correction_stat = CRUDCorrectionStat(CorrectionStat)
displayed_forecast = CRUDDisplayedForecast(DisplayedForecast)
nowcast_log = CRUDNowcastLog(NowcastLog)
