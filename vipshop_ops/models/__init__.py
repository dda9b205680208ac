"""Domain models for the vipshop-ops workbook pipeline.

This package contains the data classes shared across catalog loading,
validation, import and statistics.
"""

from .config_models import AppConfig
from .error_record import ErrorRecord
from .import_result import ImportResult
from .row_data import ROW_NUMBER_KEY, RowData
from .sales import DailySales, MonthDays, YearRange
from .schema import EntitySchema, FieldSpec, FieldType, ImportMode, IndexSpec, ValidatorConfig
from .validation_result import (
    BatchItem,
    BatchResult,
    BatchSummary,
    EntityResult,
    FieldResult,
    ValueResult,
)

__all__ = [
    # Configuration / schema models
    "AppConfig",
    "EntitySchema",
    "FieldSpec",
    "FieldType",
    "ImportMode",
    "IndexSpec",
    "ValidatorConfig",
    # Row / import models
    "ROW_NUMBER_KEY",
    "RowData",
    "ErrorRecord",
    "ImportResult",
    # Validation results
    "ValueResult",
    "FieldResult",
    "EntityResult",
    "BatchItem",
    "BatchSummary",
    "BatchResult",
    # Statistics value objects
    "DailySales",
    "YearRange",
    "MonthDays",
]
