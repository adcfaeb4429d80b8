"""
Database models for CMMS reporting.
"""
from cmms_reports.models.organization import Organization
from cmms_reports.models.user import User
from cmms_reports.models.asset import Asset
from cmms_reports.models.work_order import WorkOrder
from cmms_reports.models.preventive_maintenance import PreventiveMaintenance
from cmms_reports.models.inventory import Part
from cmms_reports.models.audit_log import AuditLog
from cmms_reports.models.saved_report import SavedReport

__all__ = [
    "Organization",
    "User",
    "Asset",
    "WorkOrder",
    "PreventiveMaintenance",
    "Part",
    "AuditLog",
    "SavedReport",
]
