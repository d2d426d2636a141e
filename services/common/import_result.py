"""
Import result models returned by the CSV import service
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class RowError:
    """Errors for one CSV row. Row 0 means the file as a whole."""
    row: int
    errors: List[str]
    data: Optional[Any] = None  # raw row dict, or the raw line for parser errors

    def to_dict(self) -> Dict[str, Any]:
        payload = {'row': self.row, 'errors': list(self.errors)}
        if self.data is not None:
            payload['data'] = self.data
        return payload


@dataclass
class ImportResult:
    """
    Aggregate outcome of one CSV import.

    Built fresh for each import and returned once; row errors and warnings
    keep the order of the source file.
    """
    total_rows: int = 0
    successful_imports: int = 0
    failed_imports: int = 0
    errors: List[RowError] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.successful_imports > 0

    @classmethod
    def file_error(cls, message: str) -> 'ImportResult':
        """Result for a file rejected before any row was processed"""
        result = cls()
        result.add_error(0, [message])
        return result

    def add_error(self, row: int, errors: List[str], data: Optional[Any] = None) -> None:
        self.errors.append(RowError(row=row, errors=list(errors), data=data))

    def add_warning(self, message: str, row: Optional[int] = None) -> None:
        self.warnings.append(f"Row {row}: {message}" if row is not None else message)

    def to_dict(self) -> Dict[str, Any]:
        """Payload shape consumed by the import UI"""
        return {
            'success': self.success,
            'totalRows': self.total_rows,
            'successfulImports': self.successful_imports,
            'failedImports': self.failed_imports,
            'errors': [error.to_dict() for error in self.errors],
            'warnings': list(self.warnings),
        }
