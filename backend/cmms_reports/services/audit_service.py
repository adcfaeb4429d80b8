"""
Audit logging service for tracking changes to saved reports.
"""
import enum
from datetime import date, datetime
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.inspection import inspect

from cmms_reports.models.audit_log import AuditLog
from cmms_reports.models.user import User


def _plain(value: Any) -> Any:
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


async def log_audit(
    db: AsyncSession,
    entity_type: str,
    entity_id: int,
    action: str,
    user: Optional[User] = None,
    entity_name: Optional[str] = None,
    changes: Optional[dict] = None,
    description: Optional[str] = None,
) -> AuditLog:
    """
    Create an audit log entry.

    Args:
        db: Database session
        entity_type: Type of entity (e.g., "SavedReport")
        entity_id: ID of the entity
        action: Action performed (CREATE, UPDATE, DELETE)
        user: User who performed the action
        entity_name: Human-readable name of the entity
        changes: Dictionary of changed fields
        description: Human-readable description of the action
    """
    audit_log = AuditLog(
        entity_type=entity_type,
        entity_id=entity_id,
        entity_name=entity_name,
        action=action,
        user_id=user.id if user else None,
        user_email=user.email if user else None,
        organization_id=user.organization_id if user else None,
        changes=changes,
        description=description,
    )

    db.add(audit_log)
    await db.flush()

    return audit_log


def snapshot(entity: Any) -> dict:
    """Loaded column values of an entity, JSON friendly, skipping nulls."""
    state = inspect(entity)
    values = {}
    for column in state.mapper.column_attrs:
        # Server-side defaults are not loaded until the next refresh
        if column.key in state.unloaded:
            continue
        value = getattr(entity, column.key)
        if value is not None:
            values[column.key] = _plain(value)
    return values


async def log_create(
    db: AsyncSession,
    entity: Any,
    entity_type: str,
    user: Optional[User] = None,
    entity_name: Optional[str] = None,
    description: Optional[str] = None,
) -> AuditLog:
    """Log a CREATE action for an entity."""
    return await log_audit(
        db=db,
        entity_type=entity_type,
        entity_id=entity.id,
        action="CREATE",
        user=user,
        entity_name=entity_name,
        changes=snapshot(entity),
        description=description or f"Created {entity_type}",
    )


async def log_update(
    db: AsyncSession,
    entity: Any,
    entity_type: str,
    old_values: dict,
    new_values: dict,
    user: Optional[User] = None,
    entity_name: Optional[str] = None,
    description: Optional[str] = None,
) -> Optional[AuditLog]:
    """
    Log an UPDATE action for an entity.
    Only logs if there are actual changes.
    """
    changes = {}

    for key, new_val in new_values.items():
        old_val = _plain(old_values.get(key))
        new_val = _plain(new_val)
        if old_val != new_val:
            changes[key] = {"old": old_val, "new": new_val}

    if not changes:
        return None

    desc = description or f"Updated {entity_type}: {', '.join(changes.keys())}"

    return await log_audit(
        db=db,
        entity_type=entity_type,
        entity_id=entity.id,
        action="UPDATE",
        user=user,
        entity_name=entity_name,
        changes=changes,
        description=desc,
    )


async def log_delete(
    db: AsyncSession,
    entity_type: str,
    entity_id: int,
    user: Optional[User] = None,
    entity_name: Optional[str] = None,
    description: Optional[str] = None,
    deleted_data: Optional[dict] = None,
) -> AuditLog:
    """Log a DELETE action for an entity."""
    return await log_audit(
        db=db,
        entity_type=entity_type,
        entity_id=entity_id,
        action="DELETE",
        user=user,
        entity_name=entity_name,
        changes=deleted_data,
        description=description or f"Deleted {entity_type}",
    )
