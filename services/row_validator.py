"""
Row Validator - business rules for a single cleaned buyer row

Every check runs, so one row can report several problems at once. Errors
keep the row out of the import; warnings describe an automatic fix that was
applied in place and do not block it.
"""

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List

from services.enums import (
    ENUM_FIELDS,
    BHK_REQUIRED_TYPES,
    BHK_FORBIDDEN_TYPES,
    enum_values,
)
from services.field_normalizer import FieldNormalizer, map_enum_value

REQUIRED_FIELDS = ('fullName', 'phone', 'city', 'propertyType', 'purpose', 'timeline', 'source')

PHONE_MIN_DIGITS = 10
PHONE_MAX_DIGITS = 15
NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 80
NOTES_MAX_LENGTH = 1000
# Largest amount a BIGINT budget column holds
BUDGET_MAX_VALUE = 2 ** 63 - 1

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')


@dataclass
class RowValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


class RowValidator:
    """Validates cleaned rows; may auto-fix enum aliases and stray BHK values"""

    @classmethod
    def validate(cls, row: Dict[str, Any]) -> RowValidationResult:
        """
        Validate one cleaned row.

        Args:
            row: Output of FieldNormalizer.clean. Mutated in place when an
                enum value is remapped or a BHK value is cleared.

        Returns:
            RowValidationResult with is_valid == (no errors)
        """
        errors: List[str] = []
        warnings: List[str] = []

        cls._check_required(row, errors)
        cls._check_phone(row, errors)
        cls._check_email(row, errors)
        cls._check_enums(row, errors, warnings)
        cls._check_bhk(row, errors, warnings)
        cls._check_budget(row, errors)
        cls._check_notes(row, errors)
        cls._check_full_name(row, errors)

        return RowValidationResult(is_valid=not errors, errors=errors, warnings=warnings)

    @staticmethod
    def _check_required(row, errors):
        for field_name in REQUIRED_FIELDS:
            if _is_blank(row.get(field_name)):
                errors.append(f"{field_name} is required")

    @staticmethod
    def _check_phone(row, errors):
        if _is_blank(row.get('phone')):
            return
        digits = FieldNormalizer.clean_phone(row['phone'])
        if not PHONE_MIN_DIGITS <= len(digits) <= PHONE_MAX_DIGITS:
            errors.append(f"phone must be {PHONE_MIN_DIGITS}-{PHONE_MAX_DIGITS} digits (provided: {digits})")

    @staticmethod
    def _check_email(row, errors):
        email = row.get('email')
        if _is_blank(email):
            return
        if not EMAIL_PATTERN.match(str(email)):
            errors.append(f"email format is invalid (provided: {email})")

    @staticmethod
    def _check_enums(row, errors, warnings):
        # Values the normalizer already rewrote through an alias
        for field_name, original, canonical in getattr(row, 'alias_mappings', ()):
            warnings.append(f"{field_name} '{original}' was mapped to '{canonical}'")

        for field_name, enum_class in ENUM_FIELDS.items():
            value = row.get(field_name)
            if _is_blank(value):
                continue
            allowed = enum_values(enum_class)
            if value in allowed:
                continue
            suggestion = map_enum_value(field_name, value)
            if suggestion:
                warnings.append(f"{field_name} '{value}' was mapped to '{suggestion}'")
                row[field_name] = suggestion
            else:
                errors.append(f"{field_name} must be one of: {', '.join(allowed)} (provided: {value})")

    @staticmethod
    def _check_bhk(row, errors, warnings):
        property_type = row.get('propertyType')
        bhk = row.get('bhk')
        if property_type in BHK_REQUIRED_TYPES:
            if _is_blank(bhk):
                errors.append(f"bhk is required for {property_type} properties")
        elif property_type in BHK_FORBIDDEN_TYPES:
            if not _is_blank(bhk):
                warnings.append(f"bhk should be empty for {property_type} properties, but '{bhk}' was provided")
                row['bhk'] = None

    @staticmethod
    def _check_budget(row, errors):
        budgets = {}
        for field_name in ('budgetMin', 'budgetMax'):
            value = row.get(field_name)
            if value is None or value == '':
                continue
            if (isinstance(value, bool) or not isinstance(value, (int, float))
                    or not math.isfinite(value) or value < 0 or value != int(value)):
                errors.append(f"{field_name} must be a whole number of at least 0 (provided: {value})")
                continue
            if value > BUDGET_MAX_VALUE:
                errors.append(f"{field_name} must be at most {BUDGET_MAX_VALUE} (provided: {value})")
                continue
            budgets[field_name] = value

        if 'budgetMin' in budgets and 'budgetMax' in budgets:
            if budgets['budgetMax'] < budgets['budgetMin']:
                errors.append(
                    f"budgetMax ({budgets['budgetMax']}) must be greater than or equal to "
                    f"budgetMin ({budgets['budgetMin']})"
                )

    @staticmethod
    def _check_notes(row, errors):
        notes = row.get('notes')
        if notes is None or notes == '':
            return
        if not isinstance(notes, str):
            errors.append('notes must be a string')
        elif len(notes) > NOTES_MAX_LENGTH:
            errors.append(f"notes must be less than {NOTES_MAX_LENGTH} characters (provided: {len(notes)})")

    @staticmethod
    def _check_full_name(row, errors):
        full_name = row.get('fullName')
        if _is_blank(full_name):
            return
        if not isinstance(full_name, str):
            errors.append('fullName must be a string')
        elif not NAME_MIN_LENGTH <= len(full_name) <= NAME_MAX_LENGTH:
            errors.append(
                f"fullName must be between {NAME_MIN_LENGTH} and {NAME_MAX_LENGTH} characters "
                f"(provided: {len(full_name)})"
            )
