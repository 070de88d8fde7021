import calendar
from dataclasses import dataclass
from datetime import date

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from sitelog.common.enums import MemoryCategory
from sitelog.common.exceptions import (
    ActivityIdConflictError,
    BadRequestError,
    ExternalServiceError,
    NotFoundError,
)
from sitelog.common.logging import get_logger
from sitelog.config import settings
from sitelog.core.memory.service import MemoryService
from sitelog.core.reports import identifiers
from sitelog.core.reports.identifiers import ActivityIdCommit
from sitelog.core.reports.metrics import compute_activity_metrics
from sitelog.core.reports.schemas import ActivityEntry, ActivityMetrics, ReportDocument
from sitelog.db.models.report import DailyReport

logger = get_logger("reports.service")


@dataclass
class RippleShiftResult:
    conflict_id: str
    shifted_reports: int = 0
    failed_reports: int = 0

    @property
    def complete(self) -> bool:
        return self.failed_reports == 0


def to_document(report: DailyReport) -> ReportDocument:
    return ReportDocument(
        id=report.id,
        user_id=report.user_id,
        date=report.report_date,
        created_at=report.created_at,
        updated_at=report.updated_at,
        activities=report.activities or [],
    )


def _dump(activities: list[ActivityEntry]) -> list[dict]:
    return [a.model_dump(mode="json") for a in activities]


class ReportService:
    def __init__(self, memory_service: MemoryService | None = None):
        self.memory_service = memory_service or MemoryService()

    # ---------- Reads ----------

    async def get_report(self, user_id: str, report_date: date, db: AsyncSession) -> DailyReport | None:
        result = await db.execute(
            select(DailyReport).where(
                DailyReport.user_id == user_id, DailyReport.report_date == report_date
            )
        )
        return result.scalar_one_or_none()

    async def require_report(self, user_id: str, report_date: date, db: AsyncSession) -> DailyReport:
        report = await self.get_report(user_id, report_date, db)
        if not report:
            raise NotFoundError("Report", report_date.isoformat())
        return report

    async def get_document(
        self, user_id: str, report_date: date, db: AsyncSession
    ) -> ReportDocument | None:
        try:
            report = await self.get_report(user_id, report_date, db)
        except SQLAlchemyError:
            logger.exception("Failed to load report %s for user %s", report_date, user_id)
            return None
        return to_document(report) if report else None

    async def list_reports(
        self,
        user_id: str,
        db: AsyncSession,
        start: date | None = None,
        end: date | None = None,
        limit: int | None = None,
    ) -> list[ReportDocument]:
        """Reports of one user, newest date first; empty on store failure."""
        query = select(DailyReport).where(DailyReport.user_id == user_id)
        if start:
            query = query.where(DailyReport.report_date >= start)
        if end:
            query = query.where(DailyReport.report_date <= end)
        query = query.order_by(DailyReport.report_date.desc())
        if limit:
            query = query.limit(limit)

        try:
            result = await db.execute(query)
        except SQLAlchemyError:
            logger.exception("Failed to list reports for user %s", user_id)
            return []
        return [to_document(r) for r in result.scalars().all()]

    async def report_dates_in_month(
        self, user_id: str, year: int, month: int, db: AsyncSession
    ) -> list[date]:
        if not 1 <= month <= 12:
            raise BadRequestError(f"Invalid month: {month}")
        first = date(year, month, 1)
        last = date(year, month, calendar.monthrange(year, month)[1])
        try:
            result = await db.execute(
                select(DailyReport.report_date)
                .where(
                    DailyReport.user_id == user_id,
                    DailyReport.report_date >= first,
                    DailyReport.report_date <= last,
                )
                .order_by(DailyReport.report_date)
            )
        except SQLAlchemyError:
            logger.exception("Failed to read calendar %d-%02d for user %s", year, month, user_id)
            return []
        return list(result.scalars().all())

    # ---------- Writes ----------

    async def _write(
        self,
        user_id: str,
        report_date: date,
        activities: list[ActivityEntry],
        db: AsyncSession,
        report: DailyReport | None = None,
    ) -> DailyReport:
        try:
            if report is None:
                report = await self.get_report(user_id, report_date, db)
            if report is None:
                report = DailyReport(user_id=user_id, report_date=report_date)
                db.add(report)
            report.activities = _dump(activities)
            await db.flush()
            await db.refresh(report)
        except SQLAlchemyError as exc:
            logger.exception("Failed to save report %s for user %s", report_date, user_id)
            raise ExternalServiceError("report store", "Report could not be saved, try again") from exc
        return report

    async def save_report(
        self, user_id: str, report_date: date, data: dict, db: AsyncSession
    ) -> ReportDocument:
        """Create or merge the report for ``report_date`` and update resource memory.

        Only the keys present in ``data`` replace stored values.
        """
        try:
            existing = await self.get_report(user_id, report_date, db)
        except SQLAlchemyError as exc:
            logger.exception("Failed to load report %s for user %s", report_date, user_id)
            raise ExternalServiceError("report store", "Report could not be loaded, try again") from exc
        if "activities" in data:
            activities = [ActivityEntry.model_validate(a) for a in data["activities"] or []]
        elif existing:
            activities = to_document(existing).activities
        else:
            activities = []

        report = await self._write(user_id, report_date, activities, db, existing)
        await self.memory_service.remember_report(user_id, activities, db)

        logger.info(
            "Saved report %s for user %s with %d activities", report_date, user_id, len(activities)
        )
        return to_document(report)

    async def delete_report(self, user_id: str, report_date: date, db: AsyncSession) -> None:
        report = await self.require_report(user_id, report_date, db)
        await db.delete(report)
        await db.flush()
        logger.info("Deleted report %s for user %s", report_date, user_id)

    async def copy_report(
        self, user_id: str, source_date: date, target_date: date, db: AsyncSession
    ) -> ReportDocument:
        if source_date == target_date:
            raise BadRequestError("Copy target date must differ from the source date")
        source = await self.require_report(user_id, source_date, db)
        activities = to_document(source).activities
        report = await self._write(user_id, target_date, activities, db)
        logger.info("Copied report %s to %s for user %s", source_date, target_date, user_id)
        return to_document(report)

    # ---------- Activities ----------

    async def _activities(
        self, user_id: str, report_date: date, db: AsyncSession, create: bool = False
    ) -> tuple[DailyReport | None, list[ActivityEntry]]:
        report = await self.get_report(user_id, report_date, db)
        if report is None:
            if not create:
                raise NotFoundError("Report", report_date.isoformat())
            return None, []
        return report, to_document(report).activities

    @staticmethod
    def _find(activities: list[ActivityEntry], entry_id: str) -> ActivityEntry:
        for activity in activities:
            if activity.id == entry_id:
                return activity
        raise NotFoundError("Activity", entry_id)

    async def add_activity(
        self, user_id: str, report_date: date, db: AsyncSession
    ) -> tuple[ReportDocument, ActivityEntry]:
        report, activities = await self._activities(user_id, report_date, db, create=True)
        activity = identifiers.new_activity(report_date.isoformat(), activities)
        activities = identifiers.add_activity(activities, activity)
        report = await self._write(user_id, report_date, activities, db, report)
        return to_document(report), self._find(activities, activity.id)

    async def delete_activity(
        self, user_id: str, report_date: date, entry_id: str, db: AsyncSession
    ) -> ReportDocument:
        report, activities = await self._activities(user_id, report_date, db)
        activities, removed = identifiers.remove_activity(activities, entry_id)
        if not removed:
            raise NotFoundError("Activity", entry_id)
        report = await self._write(user_id, report_date, activities, db, report)
        return to_document(report)

    async def reorder_activity(
        self, user_id: str, report_date: date, entry_id: str, target_id: str, db: AsyncSession
    ) -> ReportDocument:
        report, activities = await self._activities(user_id, report_date, db)
        self._find(activities, entry_id)
        self._find(activities, target_id)
        activities = identifiers.move_activity(activities, entry_id, target_id)
        report = await self._write(user_id, report_date, activities, db, report)
        return to_document(report)

    async def add_entry(
        self,
        user_id: str,
        report_date: date,
        entry_id: str,
        category: MemoryCategory,
        db: AsyncSession,
    ) -> ActivityEntry:
        report, activities = await self._activities(user_id, report_date, db)
        activity = self._find(activities, entry_id)
        activity.entries(category).append(identifiers.new_entry(category, activity))
        await self._write(user_id, report_date, activities, db, report)
        return activity

    async def activity_metrics(
        self,
        user_id: str,
        report_date: date,
        entry_id: str,
        as_of: date | None,
        db: AsyncSession,
    ) -> ActivityMetrics:
        _, activities = await self._activities(user_id, report_date, db)
        return compute_activity_metrics(self._find(activities, entry_id), as_of or report_date)

    # ---------- Activity ids across history ----------

    async def history_has_activity_id(
        self,
        user_id: str,
        activity_id: str,
        db: AsyncSession,
        exclude_date: date | None = None,
    ) -> bool:
        target = activity_id.strip().upper()
        if not target:
            return False
        query = select(DailyReport.activities).where(DailyReport.user_id == user_id)
        if exclude_date:
            query = query.where(DailyReport.report_date != exclude_date)
        try:
            result = await db.execute(query)
        except SQLAlchemyError:
            logger.exception("Failed to scan activity ids for user %s", user_id)
            return False
        return any(
            str(a.get("activity_id") or "").upper() == target
            for activities in result.scalars().all()
            for a in activities or []
        )

    async def ripple_shift_history(
        self,
        user_id: str,
        conflict_id: str,
        db: AsyncSession,
        exclude_date: date | None = None,
    ) -> RippleShiftResult:
        """Bump matching activity ids in every stored report of the user.

        Reports are written in batches that commit on their own. A failed batch
        is logged and counted; batches already written stay written.
        """
        conflict = conflict_id.strip().upper()
        outcome = RippleShiftResult(conflict_id=conflict)

        query = select(DailyReport.id, DailyReport.activities).where(DailyReport.user_id == user_id)
        if exclude_date:
            query = query.where(DailyReport.report_date != exclude_date)
        try:
            result = await db.execute(query)
        except SQLAlchemyError as exc:
            logger.exception("Failed to load reports for ripple shift of %s, user %s", conflict, user_id)
            raise ExternalServiceError("report store", "Activity ids could not be shifted, try again") from exc

        pending: list[tuple[str, list[dict]]] = []
        for report_id, stored in result.all():
            activities = [ActivityEntry.model_validate(a) for a in stored or []]
            shifted, changed = identifiers.shift_activity_ids(activities, conflict)
            if changed:
                pending.append((report_id, _dump(shifted)))

        batch_size = max(1, settings.RIPPLE_SHIFT_BATCH_SIZE)
        for start in range(0, len(pending), batch_size):
            batch = pending[start:start + batch_size]
            try:
                for report_id, activities in batch:
                    await db.execute(
                        update(DailyReport)
                        .where(DailyReport.id == report_id)
                        .values(activities=activities)
                    )
                await db.commit()
            except SQLAlchemyError:
                await db.rollback()
                outcome.failed_reports += len(batch)
                logger.exception(
                    "Ripple shift batch of %d reports failed for user %s", len(batch), user_id
                )
                continue
            outcome.shifted_reports += len(batch)

        logger.info(
            "Ripple shift %s for user %s: %d shifted, %d failed",
            conflict, user_id, outcome.shifted_reports, outcome.failed_reports,
        )
        return outcome

    async def commit_activity_id(
        self,
        user_id: str,
        report_date: date,
        entry_id: str,
        typed_id: str,
        confirm_shift: bool | None,
        db: AsyncSession,
    ) -> tuple[ReportDocument, ActivityIdCommit, RippleShiftResult | None]:
        """Give an activity a manually typed id.

        A collision with history or the rest of the report needs a decision:
        ``confirm_shift=None`` raises ``ActivityIdConflictError``, ``True`` shifts the
        existing ids up, ``False`` keeps the duplicate.
        """
        upper = typed_id.strip().upper()
        if not upper:
            raise BadRequestError("Activity ID cannot be blank")

        report, activities = await self._activities(user_id, report_date, db)
        self._find(activities, entry_id)

        in_history = await self.history_has_activity_id(user_id, upper, db, exclude_date=report_date)
        conflict = in_history or identifiers.has_local_conflict(activities, entry_id, upper)
        if conflict and confirm_shift is None:
            raise ActivityIdConflictError(upper)

        ripple = None
        if conflict and confirm_shift:
            ripple = await self.ripple_shift_history(user_id, upper, db, exclude_date=report_date)

        commit = identifiers.commit_activity_id(
            activities, entry_id, upper, conflict_in_history=in_history, shift=bool(confirm_shift)
        )
        report = await self._write(user_id, report_date, commit.activities, db, report)
        return to_document(report), commit, ripple
