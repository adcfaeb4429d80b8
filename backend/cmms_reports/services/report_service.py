"""
Saved report service for business logic.
"""
import logging
from typing import List, Optional, Tuple

from sqlalchemy import and_, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from cmms_reports.core.exceptions import ReportValidationError
from cmms_reports.models.saved_report import SavedReport
from cmms_reports.models.user import User
from cmms_reports.schemas.report import SavedReportCreate, SavedReportUpdate
from cmms_reports.services import audit_service
from cmms_reports.services.report_columns import resolve_data_source
from cmms_reports.services.report_executor import validate_report_configuration

logger = logging.getLogger(__name__)

ENTITY_TYPE = "SavedReport"
CONFIGURATION_DUMP = dict(mode="json", exclude_none=True)


class SavedReportService:
    """Service class for saved report operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def visible_to(user: User):
        """Own reports plus reports shared within the user's organization."""
        return or_(
            SavedReport.created_by_id == user.id,
            and_(
                SavedReport.is_public == True,  # noqa: E712
                SavedReport.organization_id == user.organization_id,
            ),
        )

    async def list_for_user(
        self,
        user: User,
        page: int = 1,
        page_size: int = 50,
        data_source: Optional[str] = None,
        search: Optional[str] = None,
    ) -> Tuple[List[SavedReport], int]:
        query = select(SavedReport).where(self.visible_to(user))
        if data_source:
            query = query.where(SavedReport.report_type == resolve_data_source(data_source).value)
        if search:
            query = query.where(SavedReport.name.icontains(search, autoescape=True))

        total = await self.db.scalar(select(func.count()).select_from(query.subquery())) or 0

        query = query.order_by(SavedReport.updated_at.desc(), SavedReport.id.desc())
        query = query.offset((page - 1) * page_size).limit(page_size)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def get(self, report_id: int) -> Optional[SavedReport]:
        return await self.db.get(SavedReport, report_id)

    async def create(self, data: SavedReportCreate, user: User) -> SavedReport:
        """Validate the configuration against the column registry and persist it."""
        data_source = resolve_data_source(data.data_source)
        validate_report_configuration(data_source, data.configuration)

        report = SavedReport(
            name=data.name,
            description=data.description,
            report_type=data_source.value,
            configuration=data.configuration.model_dump(**CONFIGURATION_DUMP),
            is_public=data.is_public,
            is_scheduled=data.is_scheduled,
            schedule_frequency=data.schedule_frequency,
            schedule_recipients=data.schedule_recipients,
            schedule_time=data.schedule_time,
            schedule_day_of_week=data.schedule_day_of_week,
            schedule_day_of_month=data.schedule_day_of_month,
            organization_id=user.organization_id,
            created_by_id=user.id,
        )
        self.db.add(report)
        await self.db.flush()

        await audit_service.log_create(
            self.db, report, ENTITY_TYPE, user=user, entity_name=report.name,
        )
        await self.db.commit()
        await self.db.refresh(report)

        logger.info(f"Saved report {report.id} created by user {user.id}")
        return report

    async def update(self, report: SavedReport, data: SavedReportUpdate, user: User) -> SavedReport:
        """
        Apply a partial update. A partial configuration is merged over the
        stored one and the result is validated again.
        """
        update_data = data.model_dump(exclude_unset=True, exclude={"configuration"})

        if data.configuration is not None:
            merged = dict(report.configuration or {})
            for key, value in data.configuration.model_dump(mode="json", exclude_unset=True).items():
                # An explicit null resets the key to its default
                if value is None:
                    merged.pop(key, None)
                else:
                    merged[key] = value
            validate_report_configuration(report.report_type, merged)
            update_data["configuration"] = merged

        is_scheduled = update_data.get("is_scheduled", report.is_scheduled)
        frequency = update_data.get("schedule_frequency", report.schedule_frequency)
        if is_scheduled and frequency is None:
            raise ReportValidationError(
                "schedule_frequency is required for scheduled reports", field="schedule_frequency"
            )

        old_values = {key: getattr(report, key) for key in update_data}
        for field, value in update_data.items():
            setattr(report, field, value)

        await audit_service.log_update(
            self.db, report, ENTITY_TYPE, old_values, update_data, user=user, entity_name=report.name,
        )
        await self.db.commit()
        await self.db.refresh(report)
        return report

    async def delete(self, report: SavedReport, user: User) -> None:
        deleted_data = audit_service.snapshot(report)
        report_id, report_name = report.id, report.name

        await self.db.delete(report)
        await audit_service.log_delete(
            self.db, ENTITY_TYPE, report_id, user=user, entity_name=report_name, deleted_data=deleted_data,
        )
        await self.db.commit()
        logger.info(f"Saved report {report_id} deleted by user {user.id}")
