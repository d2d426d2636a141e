"""
CSV parsing for buyer imports.

Turns the text of an uploaded file into header-keyed rows. The parser is
deliberately forgiving: rows whose column count does not match the header
are repaired by one of the ColumnFixPolicy rules and reported as a
diagnostic instead of being dropped. Only structural problems (empty file,
no header, no commas, a broken first few rows) reject the whole file.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

RawRow = Dict[str, str]

# Number of data rows checked for a consistent column count before parsing
FORMAT_CHECK_ROWS = 5

# Value appended when a row is exactly one column short. Assumes the
# dropped column is the trailing `status` column.
DEFAULT_MISSING_STATUS = 'New'


class DiagnosticSeverity(str, Enum):
    ERROR = 'error'
    WARNING = 'warning'


class ColumnFixPolicy(str, Enum):
    """How a data row with the wrong number of columns is repaired"""
    PAD_DEFAULT_STATUS = 'pad_default_status'  # one short: append DEFAULT_MISSING_STATUS
    TRUNCATE_EXTRA = 'truncate_extra'  # too many: drop the extra columns
    PAD_EMPTY = 'pad_empty'  # several short: fill with empty strings


@dataclass
class RowDiagnostic:
    """A parser message tied to one input row (row 0 means the whole file)"""
    row: int
    message: str
    raw_data: Optional[str] = None
    severity: DiagnosticSeverity = DiagnosticSeverity.ERROR
    policy: Optional[ColumnFixPolicy] = None

    @property
    def is_warning(self) -> bool:
        return self.severity == DiagnosticSeverity.WARNING


@dataclass
class CSVParseResult:
    rows: List[RawRow] = field(default_factory=list)
    diagnostics: List[RowDiagnostic] = field(default_factory=list)


def spreadsheet_row_number(data_index: int) -> int:
    """
    Row number shown to users for the data row at ``data_index`` (0-based).

    The header occupies line 1, so the first data row is reported as row 2,
    matching what spreadsheet programs display.
    """
    return data_index + 2


def choose_fix_policy(actual: int, expected: int) -> Optional[ColumnFixPolicy]:
    """Pick the repair policy for a row with ``actual`` columns, or None if it fits"""
    if actual == expected:
        return None
    if actual == expected - 1:
        return ColumnFixPolicy.PAD_DEFAULT_STATUS
    if actual > expected:
        return ColumnFixPolicy.TRUNCATE_EXTRA
    return ColumnFixPolicy.PAD_EMPTY


def apply_fix_policy(values: List[str], expected: int, policy: ColumnFixPolicy) -> Tuple[List[str], str, DiagnosticSeverity]:
    """
    Repair ``values`` to ``expected`` columns.

    Returns:
        Tuple of (fixed values, diagnostic message, diagnostic severity)
    """
    actual = len(values)
    if policy == ColumnFixPolicy.PAD_DEFAULT_STATUS:
        fixed = values + [DEFAULT_MISSING_STATUS]
        message = (f"Row had {actual} columns, expected {expected}. "
                   f"Added default status '{DEFAULT_MISSING_STATUS}'.")
        return fixed, message, DiagnosticSeverity.WARNING
    if policy == ColumnFixPolicy.TRUNCATE_EXTRA:
        fixed = values[:expected]
        message = f"Row had {actual} columns, expected {expected}. Extra columns removed."
        return fixed, message, DiagnosticSeverity.ERROR
    fixed = values + [''] * (expected - actual)
    message = f"Row had {actual} columns, expected {expected}. Missing columns filled with empty values."
    return fixed, message, DiagnosticSeverity.ERROR


class CSVParser:
    """Comma-separated parser with quote handling and column-count repair"""

    @staticmethod
    def split_lines(content: str) -> List[str]:
        """Split on newlines and drop whitespace-only lines"""
        return [line.strip() for line in content.split('\n') if line.strip()]

    @staticmethod
    def parse_line(line: str) -> List[str]:
        """
        Split one line into trimmed fields.

        A double quote toggles quoted mode, a doubled quote inside quotes is
        a literal quote, and commas only delimit outside quotes.
        """
        fields: List[str] = []
        current: List[str] = []
        in_quotes = False
        i = 0
        length = len(line)

        while i < length:
            char = line[i]
            if char == '"':
                if in_quotes and i + 1 < length and line[i + 1] == '"':
                    current.append('"')
                    i += 2
                    continue
                in_quotes = not in_quotes
            elif char == ',' and not in_quotes:
                fields.append(''.join(current).strip())
                current = []
            else:
                current.append(char)
            i += 1

        fields.append(''.join(current).strip())
        return fields

    @classmethod
    def check_format(cls, content: str) -> Optional[str]:
        """Return an error message if the file is structurally unusable, else None"""
        if not content or not content.strip():
            return 'CSV file is empty'

        lines = cls.split_lines(content)
        if len(lines) < 2:
            return 'CSV must have at least a header row and one data row'

        if ',' not in lines[0]:
            return 'CSV must be comma-separated'

        header_columns = len(cls.parse_line(lines[0]))
        mismatched = [
            line for line in lines[1:FORMAT_CHECK_ROWS + 1]
            if len(cls.parse_line(line)) != header_columns
        ]
        if mismatched:
            return (f"Column count mismatch detected. Header has {header_columns} columns, "
                    f"but some rows have different counts. This often indicates missing values "
                    f"or trailing commas.")

        return None

    @classmethod
    def parse(cls, content: str) -> CSVParseResult:
        """
        Parse CSV text into header-keyed rows.

        Args:
            content: Decoded file contents

        Returns:
            CSVParseResult with one RawRow per data line and any diagnostics.
            A structurally invalid file yields zero rows and a single row-0
            diagnostic.
        """
        result = CSVParseResult()

        format_error = cls.check_format(content)
        if format_error:
            logger.info(f"Rejected CSV: {format_error}")
            result.diagnostics.append(RowDiagnostic(row=0, message=format_error))
            return result

        lines = cls.split_lines(content)
        headers = cls.parse_line(lines[0])
        expected = len(headers)

        for index, line in enumerate(lines[1:]):
            row_number = spreadsheet_row_number(index)
            values = cls.parse_line(line)

            policy = choose_fix_policy(len(values), expected)
            if policy is not None:
                values, message, severity = apply_fix_policy(values, expected, policy)
                result.diagnostics.append(RowDiagnostic(
                    row=row_number,
                    message=message,
                    raw_data=line,
                    severity=severity,
                    policy=policy
                ))

            row: RawRow = {}
            for position, header in enumerate(headers):
                row[header] = values[position] if position < len(values) else ''
            result.rows.append(row)

        return result

    @staticmethod
    def validate_required_headers(rows: Sequence[RawRow], required_headers: Sequence[str]) -> Tuple[bool, List[str]]:
        """
        Check that every required header is a key of the first row.

        Returns:
            Tuple of (is_valid, missing header names). With no rows every
            header counts as missing.
        """
        if not rows:
            return False, list(required_headers)

        available = rows[0].keys()
        missing = [header for header in required_headers if header not in available]
        return not missing, missing
