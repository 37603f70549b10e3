# backend/scandms/models/status.py
import enum

from sqlalchemy import Enum


class RecordStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    DELETED = "deleted"


def status_column_type() -> Enum:
    """Enum column type that stores the lowercase value, which raw SQL compares against"""
    return Enum(
        RecordStatus,
        name="record_status",
        values_callable=lambda members: [member.value for member in members],
        native_enum=False,
        length=20,
    )
