"""
Field Normalizer - cleans raw buyer rows before validation

Maps free-text spreadsheet values onto canonical enum labels and tidies
phone, email, budget and tag formats. Cleaning never rejects a row: values
that cannot be understood are left as-is (or dropped, for budgets) so the
RowValidator can report them.
"""

import json
import re
import logging
from typing import Any, Dict, List, Optional, Tuple

from services.enums import BHK_FORBIDDEN_TYPES

logger = logging.getLogger(__name__)

AliasTable = Tuple[Tuple[str, str], ...]

# Ordered (alias, canonical) pairs per enum field. Order matters: the fuzzy
# fallback returns the first alias contained in (or containing) the value.
ENUM_ALIASES: Dict[str, AliasTable] = {
    'city': (
        ('chandigarh', 'Chandigarh'),
        ('mohali', 'Mohali'),
        ('zirakpur', 'Zirakpur'),
        ('panchkula', 'Panchkula'),
        ('other', 'Other'),
        ('chd', 'Chandigarh'),
        ('chandi', 'Chandigarh'),
        ('pkula', 'Panchkula'),
        ('panchula', 'Panchkula'),
    ),
    'propertyType': (
        ('apartment', 'Apartment'),
        ('villa', 'Villa'),
        ('plot', 'Plot'),
        ('office', 'Office'),
        ('retail', 'Retail'),
        ('apt', 'Apartment'),
        ('flat', 'Apartment'),
        ('house', 'Villa'),
        ('bungalow', 'Villa'),
        ('shop', 'Retail'),
        ('commercial', 'Office'),
    ),
    'bhk': (
        ('studio', 'Studio'),
        ('one', 'One'),
        ('two', 'Two'),
        ('three', 'Three'),
        ('four', 'Four'),
        ('0', 'Studio'),
        ('1', 'One'),
        ('2', 'Two'),
        ('3', 'Three'),
        ('4', 'Four'),
        ('1bhk', 'One'),
        ('2bhk', 'Two'),
        ('3bhk', 'Three'),
        ('4bhk', 'Four'),
    ),
    'purpose': (
        ('buy', 'Buy'),
        ('rent', 'Rent'),
        ('purchase', 'Buy'),
        ('sale', 'Buy'),
        ('rental', 'Rent'),
        ('lease', 'Rent'),
    ),
    'timeline': (
        ('zerotothree', 'ZeroToThree'),
        ('threetosix', 'ThreeToSix'),
        ('morethansix', 'MoreThanSix'),
        ('exploring', 'Exploring'),
        ('0-3', 'ZeroToThree'),
        ('3-6', 'ThreeToSix'),
        ('6+', 'MoreThanSix'),
        ('immediate', 'ZeroToThree'),
        ('asap', 'ZeroToThree'),
        ('flexible', 'Exploring'),
        ('later', 'MoreThanSix'),
    ),
    'source': (
        ('website', 'Website'),
        ('referral', 'Referral'),
        ('walkin', 'WalkIn'),
        ('call', 'Call'),
        ('other', 'Other'),
        ('web', 'Website'),
        ('online', 'Website'),
        ('reference', 'Referral'),
        ('phone', 'Call'),
        ('telephone', 'Call'),
        ('walk-in', 'WalkIn'),
        ('visit', 'WalkIn'),
    ),
    'status': (
        ('new', 'New'),
        ('qualified', 'Qualified'),
        ('contacted', 'Contacted'),
        ('visited', 'Visited'),
        ('negotiation', 'Negotiation'),
        ('converted', 'Converted'),
        ('dropped', 'Dropped'),
        ('fresh', 'New'),
        ('lead', 'New'),
        ('prospect', 'Qualified'),
        ('called', 'Contacted'),
        ('reached', 'Contacted'),
        ('site-visit', 'Visited'),
        ('viewing', 'Visited'),
        ('deal', 'Negotiation'),
        ('bargaining', 'Negotiation'),
        ('closed', 'Converted'),
        ('won', 'Converted'),
        ('lost', 'Dropped'),
        ('rejected', 'Dropped'),
    ),
}

# Enum fields in the order they are normalized
ENUM_FIELD_ORDER = ('city', 'propertyType', 'bhk', 'purpose', 'timeline', 'source', 'status')

BUDGET_FIELDS = ('budgetMin', 'budgetMax')

LAKH = 100_000
CRORE = 10_000_000

_CURRENCY_NOISE = re.compile(r'[₹$€£,\s]')
_BUDGET_PATTERN = re.compile(r'^(-?(?:\d+(?:\.\d+)?|\.\d+))(l|lac|lacs|lakh|lakhs|cr|crore|crores)?$')
_DISCARDED_TAGS = ('null', 'undefined', '[]')


class CleanedRow(dict):
    """
    A normalized buyer row.

    Behaves as a plain dict of field values. ``alias_mappings`` lists the
    enum values that were rewritten through an alias, as
    (field, original, canonical) tuples, so they can be reported as warnings.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.alias_mappings: List[Tuple[str, str, str]] = []


def map_enum_value(field: str, value: Any) -> Optional[str]:
    """
    Map a free-text value to the canonical label of an enum field.

    Tries an exact alias match on the lower-cased value first, then a
    substring match in either direction against every alias, in table order.

    Returns:
        Canonical label, or None when nothing matches
    """
    if value is None:
        return None
    clean_value = str(value).strip().lower()
    if not clean_value:
        return None

    aliases = ENUM_ALIASES.get(field, ())
    for alias, canonical in aliases:
        if alias == clean_value:
            return canonical

    for alias, canonical in aliases:
        if alias in clean_value or clean_value in alias:
            return canonical

    return None


class FieldNormalizer:
    """Pure functions that turn a RawRow into a CleanedRow"""

    @staticmethod
    def clean_phone(phone: Any) -> str:
        """Keep digits only and drop an Indian country code from 12-digit numbers"""
        if phone is None:
            return ''
        digits = re.sub(r'\D', '', str(phone))
        if digits.startswith('91') and len(digits) == 12:
            return digits[2:]
        return digits

    @staticmethod
    def clean_email(email: Any) -> Optional[str]:
        if email is None:
            return None
        cleaned = str(email).strip().lower()
        return cleaned or None

    @staticmethod
    def clean_budget(budget: Any) -> Optional[float]:
        """
        Parse a budget cell such as "45,00,000", "₹45L" or "1.2 Cr".

        Returns:
            The amount in rupees (int when whole), or None when unparseable
        """
        if budget is None or isinstance(budget, bool):
            return None
        if isinstance(budget, (int, float)):
            return budget

        cleaned = _CURRENCY_NOISE.sub('', str(budget)).lower()
        if not cleaned:
            return None

        match = _BUDGET_PATTERN.match(cleaned)
        if not match:
            return None

        amount = float(match.group(1))
        suffix = match.group(2)
        if suffix in ('cr', 'crore', 'crores'):
            amount *= CRORE
        elif suffix:
            amount *= LAKH

        amount = round(amount, 6)
        return int(amount) if amount.is_integer() else amount

    @staticmethod
    def clean_tags(tags: Any) -> List[str]:
        """Accept a JSON array or comma-separated text; return trimmed, non-empty tags"""
        if tags is None:
            return []
        if isinstance(tags, (list, tuple)):
            candidates = ['' if tag is None else str(tag) for tag in tags]
        else:
            text = str(tags).strip()
            if not text or text == '[]':
                return []
            try:
                parsed = json.loads(text)
            except ValueError:
                parsed = None
            if isinstance(parsed, list):
                candidates = ['' if tag is None else str(tag) for tag in parsed]
            else:
                candidates = text.split(',')

        cleaned = [tag.strip() for tag in candidates]
        return [tag for tag in cleaned if tag and tag not in _DISCARDED_TAGS]

    @classmethod
    def clean(cls, raw_row: Dict[str, Any]) -> CleanedRow:
        """
        Normalize one row.

        Args:
            raw_row: Header-keyed cell values (strings, or values from a
                previous clean)

        Returns:
            CleanedRow with the same keys, except that unparseable or empty
            budgets are removed
        """
        cleaned = CleanedRow()
        for key, value in raw_row.items():
            cleaned[key] = value.strip() if isinstance(value, str) else value

        if cleaned.get('phone'):
            cleaned['phone'] = cls.clean_phone(cleaned['phone'])

        if cleaned.get('email'):
            cleaned['email'] = cls.clean_email(cleaned['email'])

        for budget_field in BUDGET_FIELDS:
            if budget_field in cleaned and cleaned[budget_field] not in ('', None):
                amount = cls.clean_budget(cleaned[budget_field])
                if amount is None:
                    del cleaned[budget_field]
                else:
                    cleaned[budget_field] = amount

        if 'tags' in cleaned:
            cleaned['tags'] = cls.clean_tags(cleaned['tags'])

        for enum_field in ENUM_FIELD_ORDER:
            original = cleaned.get(enum_field)
            if not original:
                continue
            mapped = map_enum_value(enum_field, original)
            if mapped:
                cleaned[enum_field] = mapped
                if str(original).lower() != mapped.lower():
                    cleaned.alias_mappings.append((enum_field, str(original), mapped))

        cls._normalize_empty_values(cleaned)
        return cleaned

    @staticmethod
    def _normalize_empty_values(cleaned: CleanedRow) -> None:
        """Turn empty strings into the null/absent form each field expects"""
        for key in list(cleaned.keys()):
            if cleaned[key] != '':
                continue
            if key in ('email', 'notes', 'status'):
                cleaned[key] = None
            elif key in BUDGET_FIELDS:
                del cleaned[key]
            elif key == 'bhk' and cleaned.get('propertyType') in BHK_FORBIDDEN_TYPES:
                cleaned[key] = None
