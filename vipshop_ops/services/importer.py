from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Sequence
from typing import Any

from vipshop_ops.config.catalog import SchemaCatalog, default_catalog
from vipshop_ops.db.repository import InMemoryRepository
from vipshop_ops.excel.reader import SheetData
from vipshop_ops.logging.error_log import ErrorLogBuffer
from vipshop_ops.models.error_record import ErrorRecord
from vipshop_ops.models.import_result import ImportResult
from vipshop_ops.models.row_data import ROW_NUMBER_KEY, RowData
from vipshop_ops.models.schema import EntitySchema, FieldType, ImportMode
from vipshop_ops.utils.converters import is_empty, to_date_str, to_number, to_string
from vipshop_ops.validation.engine import ValidationEngine, validation_engine

from .entity_identifier import EntityIdentifier, normalize_headers

"""Sheet import service.

Pipeline for one sheet:

1. identify the entity from the header row
2. map columns to field names by title, attach the row number
3. fill field defaults into empty cells
4. validate the whole batch (nothing is written if any row fails)
5. normalize values (numbers, ``YYYY-MM-DD`` dates, trimmed text)
6. overwrite or append, depending on the entity's import mode

Rejected rows are also written to the error log, one record per message.
"""

__all__ = [
    "DEFAULT_SHEET_NAME",
    "DataImportService",
]

logger = logging.getLogger(__name__)

DEFAULT_SHEET_NAME = "导入数据"
UNKNOWN_SHEET_ERROR = "UNKNOWN_SHEET"
VALIDATION_ERROR = "VALIDATION_ERROR"


def _clean_cell(value: Any) -> Any:
    if isinstance(value, float) and math.isnan(value):
        return None
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


class DataImportService:
    def __init__(
        self,
        repository: InMemoryRepository,
        identifier: EntityIdentifier | None = None,
        engine: ValidationEngine | None = None,
        catalog: SchemaCatalog | None = None,
        error_log: ErrorLogBuffer | None = None,
    ) -> None:
        self._repository = repository
        self._catalog = catalog or default_catalog()
        self._identifier = identifier or EntityIdentifier(self._catalog)
        self._engine = engine or validation_engine
        self._error_log = error_log

    def import_rows(
        self,
        headers: Sequence[Any],
        rows: Iterable[Sequence[Any]],
        *,
        sheet_name: str = DEFAULT_SHEET_NAME,
        file_name: str = "<memory>",
    ) -> ImportResult:
        """Import raw rows aligned to ``headers``.

        The header is taken as spreadsheet row 1, so ``rows[i]`` is row
        ``i + 2``. Rows whose cells are all empty are skipped.
        """
        titles = normalize_headers(headers)
        row_data = []
        for offset, raw in enumerate(rows):
            cells = [_clean_cell(v) for v in raw]
            if all(c is None for c in cells):
                continue
            row_data.append(RowData(row_number=offset + 2, values=dict(zip(titles, cells))))
        return self._import(titles, row_data, sheet_name, file_name)

    def import_sheet(self, sheet: SheetData, file_name: str = "<memory>") -> ImportResult:
        """Import a sheet produced by ``excel.reader.normalize_sheet``."""
        return self._import(sheet.columns, sheet.rows, sheet.sheet_name, file_name)

    # ------------------------------------------------------------------

    def _import(self, headers: Sequence[str], rows: Sequence[RowData], sheet_name: str, file_name: str) -> ImportResult:
        entity_name = self._identifier.identify(headers)
        if entity_name is None:
            return self._unrecognised(headers, sheet_name, file_name)

        schema = self._catalog.get(entity_name)
        if schema is None:  # pragma: no cover - identifier and catalog share the same source
            return self._unrecognised(headers, sheet_name, file_name)

        title_map = schema.title_map()
        entities = [self._apply_defaults(row.to_entity(title_map), schema) for row in rows]

        batch = self._engine.validate_all(entities, schema)
        if not batch.valid:
            message = self._engine.format_errors(batch, schema.worksheet) or ""
            self._record_rejections(batch.invalid_items(), file_name, sheet_name)
            logger.warning(
                "%s/%s: %d of %d rows rejected for %s",
                file_name,
                sheet_name,
                batch.summary.invalid,
                batch.summary.total,
                entity_name,
            )
            return ImportResult(
                success=False,
                sheet_name=sheet_name,
                message=message,
                entity_name=entity_name,
                worksheet=schema.worksheet,
                mode=schema.import_mode,
                total=len(entities),
                validation=batch,
            )

        records = [self._normalize(item.data, schema) for item in batch.items]
        if schema.import_mode is ImportMode.APPEND:
            new, updated = self._repository.append(entity_name, records)
            message = f"销售数据导入完成：新增{new}条，更新{updated}条"
        else:
            self._repository.save(entity_name, records)
            new, updated = len(records), 0
            message = f"成功导入 {len(records)} 条数据到【{schema.worksheet}】"

        logger.info("%s/%s: %s", file_name, sheet_name, message)
        return ImportResult(
            success=True,
            sheet_name=sheet_name,
            message=message,
            entity_name=entity_name,
            worksheet=schema.worksheet,
            mode=schema.import_mode,
            total=len(records),
            new=new,
            updated=updated,
            validation=batch,
        )

    def _unrecognised(self, headers: Sequence[str], sheet_name: str, file_name: str) -> ImportResult:
        lines = ["无法识别导入数据的类型，请确保表头包含以下必填字段之一："]
        for name in self._identifier.get_importable_entities():
            schema = self._catalog.get(name)
            if schema is not None:
                lines.append(f"- {schema.worksheet}：{'、'.join(schema.required_titles)}")
        message = "\n".join(lines)
        if self._error_log is not None:
            self._error_log.append(
                ErrorRecord.create(
                    file=file_name,
                    sheet=sheet_name,
                    row=-1,
                    error_type=UNKNOWN_SHEET_ERROR,
                    message=message,
                )
            )
        logger.warning("%s/%s: header matches no importable entity", file_name, sheet_name)
        return ImportResult(success=False, sheet_name=sheet_name, message=message)

    def _record_rejections(self, items: Iterable[Any], file_name: str, sheet_name: str) -> None:
        if self._error_log is None:
            return
        for item in items:
            for msg in item.messages():
                self._error_log.append(
                    ErrorRecord.create(
                        file=file_name,
                        sheet=sheet_name,
                        row=item.row_number if item.row_number is not None else -1,
                        error_type=VALIDATION_ERROR,
                        message=msg,
                    )
                )

    @staticmethod
    def _apply_defaults(entity: dict[str, Any], schema: EntitySchema) -> dict[str, Any]:
        for name, spec in schema.fields.items():
            if spec.default is not None and is_empty(entity.get(name)):
                entity[name] = spec.default
        return entity

    @staticmethod
    def _normalize(data: dict[str, Any], schema: EntitySchema) -> dict[str, Any]:
        record: dict[str, Any] = {ROW_NUMBER_KEY: data.get(ROW_NUMBER_KEY)}
        for name, spec in schema.fields.items():
            if spec.is_computed or name not in data:
                continue
            value = data[name]
            if spec.type is FieldType.NUMBER:
                record[name] = to_number(value)
            elif spec.type is FieldType.DATE:
                record[name] = to_date_str(value)
            else:
                record[name] = to_string(value)
        return record
