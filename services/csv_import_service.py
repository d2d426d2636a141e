"""
CSV Import Service - bulk import of buyer leads from an uploaded CSV file
"""

import json
import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from werkzeug.datastructures import FileStorage

from crm_database import Buyer
from logging_config import import_logger
from repositories.buyer_repository import BuyerRepository
from repositories.buyer_history_repository import BuyerHistoryRepository
from services.common.import_result import ImportResult
from services.enums import BuyerStatus
from services.field_normalizer import FieldNormalizer
from services.row_validator import RowValidator, REQUIRED_FIELDS
from utils.csv_parser import CSVParser, spreadsheet_row_number

logger = logging.getLogger(__name__)

MAX_FILE_SIZE = 5 * 1024 * 1024  # 5MB
MAX_ROWS = 1000
REQUIRED_HEADERS = list(REQUIRED_FIELDS)
ALLOWED_MIME_TYPES = ('text/csv', 'application/csv', 'text/plain')
ALLOWED_EXTENSIONS = ('.csv',)


@dataclass
class FileValidationResult:
    is_valid: bool
    error: Optional[str] = None
    size: Optional[int] = None
    content_type: Optional[str] = None
    content: Optional[bytes] = None


class CSVImportService:
    """
    CSV Import Service using Repository Pattern

    Runs an upload through parse -> clean -> validate and inserts every
    valid row in one transaction:
    - File-level problems stop the import with a single row-0 error
    - Invalid rows are reported and skipped, the rest of the file continues
    - A database failure fails the whole batch; nothing is partially committed
    """

    def __init__(self,
                 buyer_repository: BuyerRepository,
                 buyer_history_repository: BuyerHistoryRepository,
                 max_file_size: int = MAX_FILE_SIZE,
                 max_rows: int = MAX_ROWS):
        """
        Initialize CSV Import Service with repository dependencies.

        Args:
            buyer_repository: Repository used for the bulk insert
            buyer_history_repository: Repository for the per-buyer change log
            max_file_size: Largest accepted upload, in bytes
            max_rows: Data rows processed per file; the rest are ignored
        """
        self.buyer_repository = buyer_repository
        self.buyer_history_repository = buyer_history_repository
        self.max_file_size = max_file_size
        self.max_rows = max_rows

    def validate_file(self, file: Optional[FileStorage]) -> FileValidationResult:
        """
        Check that the upload exists, fits the size limit, looks like a CSV
        and is not empty. On success the file bytes are returned in
        ``content`` so the upload is only read once.
        """
        if file is None:
            return FileValidationResult(is_valid=False, error='No file provided')

        # Measure with seek/tell so an oversized upload is never read
        stream = file.stream
        stream.seek(0, os.SEEK_END)
        size = stream.tell()
        stream.seek(0)
        content_type = file.mimetype

        if size > self.max_file_size:
            return self._size_error(size)

        filename = (file.filename or '').lower()
        has_valid_mime_type = content_type in ALLOWED_MIME_TYPES
        has_valid_extension = filename.endswith(ALLOWED_EXTENSIONS)
        if not has_valid_mime_type and not has_valid_extension:
            return FileValidationResult(
                is_valid=False,
                error=f"Invalid file type. Expected CSV file, got {content_type or 'unknown'}",
                content_type=content_type
            )

        content = stream.read(self.max_file_size + 1)
        if len(content) > self.max_file_size:
            return self._size_error(len(content))

        if not content:
            return FileValidationResult(is_valid=False, error='File is empty')

        return FileValidationResult(is_valid=True, size=len(content), content_type=content_type, content=content)

    def _size_error(self, size: int) -> FileValidationResult:
        limit_mb = round(self.max_file_size / 1024 / 1024)
        return FileValidationResult(
            is_valid=False,
            error=f"File size ({round(size / 1024 / 1024)}MB) exceeds maximum allowed size ({limit_mb}MB)",
            size=size
        )

    def import_from_file(self, file: Optional[FileStorage], owner_id: str) -> ImportResult:
        """
        Import buyers from an uploaded CSV file.

        Args:
            file: The uploaded CSV file
            owner_id: User the imported buyers are attributed to

        Returns:
            ImportResult with counts, row errors and warnings. Never raises;
            unexpected failures are reported as a row-0 error.
        """
        try:
            result = self._import(file, owner_id)
        except Exception as e:
            logger.exception(f"CSV import failed unexpectedly: {e}")
            result = ImportResult.file_error(f"Import process failed: {e}")

        import_logger.log_import_summary(
            owner_id=owner_id,
            filename=getattr(file, 'filename', None),
            total_rows=result.total_rows,
            successful_imports=result.successful_imports,
            failed_imports=result.failed_imports,
            error_count=len(result.errors),
            warning_count=len(result.warnings)
        )
        return result

    def _import(self, file: Optional[FileStorage], owner_id: str) -> ImportResult:
        file_check = self.validate_file(file)
        if not file_check.is_valid:
            return ImportResult.file_error(file_check.error or 'File validation failed')

        try:
            content = file_check.content.decode('utf-8-sig')
        except UnicodeDecodeError:
            return ImportResult.file_error('File must be UTF-8 encoded text')

        result = ImportResult()
        parsed = CSVParser.parse(content)

        for diagnostic in parsed.diagnostics:
            if diagnostic.is_warning:
                result.add_warning(diagnostic.message, row=diagnostic.row)
            else:
                result.add_error(diagnostic.row, [diagnostic.message], data=diagnostic.raw_data)

        rows = parsed.rows
        if not rows:
            result.add_error(0, ['No valid data rows found in CSV'])
            return result

        if len(rows) > self.max_rows:
            result.add_warning(
                f"CSV contains {len(rows)} rows. Only first {self.max_rows} rows will be processed."
            )
            rows = rows[:self.max_rows]

        result.total_rows = len(rows)

        headers_ok, missing_headers = CSVParser.validate_required_headers(rows, REQUIRED_HEADERS)
        if not headers_ok:
            result.add_error(0, [f"Missing required headers: {', '.join(missing_headers)}"])
            return result

        staged: List[Dict[str, Any]] = []
        for index, raw_row in enumerate(rows):
            row_number = spreadsheet_row_number(index)
            try:
                cleaned = FieldNormalizer.clean(raw_row)
                validation = RowValidator.validate(cleaned)
            except Exception as e:
                logger.error(f"Row {row_number} processing failed: {e}")
                result.add_error(row_number, [f"Row processing failed: {e}"], data=raw_row)
                result.failed_imports += 1
                continue

            for warning in validation.warnings:
                result.add_warning(warning, row=row_number)

            if validation.is_valid:
                staged.append(self._to_persistable(cleaned, owner_id))
                result.successful_imports += 1
            else:
                result.add_error(row_number, validation.errors, data=raw_row)
                result.failed_imports += 1

        if staged:
            self._bulk_insert(staged, owner_id, result)

        return result

    def _bulk_insert(self, staged: List[Dict[str, Any]], owner_id: str, result: ImportResult) -> None:
        """Insert all staged rows in one transaction; on failure mark the whole batch failed"""
        try:
            buyers = self.buyer_repository.create_many(staged)
            self.buyer_history_repository.record_many([
                {'buyer_id': buyer.id, 'changed_by': owner_id, 'diff': {'imported': buyer.to_dict()}}
                for buyer in buyers
            ])
            self.buyer_repository.commit()
            logger.info(f"Imported {len(buyers)} buyers for owner {owner_id}")
        except Exception as e:
            logger.error(f"Bulk insert of {len(staged)} buyers failed: {e}")
            self.buyer_repository.rollback()
            result.add_error(0, [f"Database import failed: {e}"])
            result.successful_imports = 0
            result.failed_imports = result.total_rows

    @staticmethod
    def _to_persistable(cleaned: Dict[str, Any], owner_id: str) -> Dict[str, Any]:
        """Map a validated row onto Buyer columns"""
        record = Buyer.columns_from_fields(cleaned)
        record['tags'] = json.dumps(cleaned.get('tags') or [])
        record['status'] = cleaned.get('status') or BuyerStatus.NEW.value
        record['bhk'] = cleaned.get('bhk') or None
        record['owner_id'] = owner_id
        return record
