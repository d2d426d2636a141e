"""
Service layer enums
These enums mirror the values stored on Buyer records but let services and
the import pipeline work without importing database models
"""

from enum import Enum
from typing import Tuple


class City(str, Enum):
    """Cities the sales team covers"""
    CHANDIGARH = 'Chandigarh'
    MOHALI = 'Mohali'
    ZIRAKPUR = 'Zirakpur'
    PANCHKULA = 'Panchkula'
    OTHER = 'Other'


class PropertyType(str, Enum):
    """Kinds of property a buyer is looking for"""
    APARTMENT = 'Apartment'
    VILLA = 'Villa'
    PLOT = 'Plot'
    OFFICE = 'Office'
    RETAIL = 'Retail'


class BHK(str, Enum):
    """Bedroom-hall-kitchen size"""
    STUDIO = 'Studio'
    ONE = 'One'
    TWO = 'Two'
    THREE = 'Three'
    FOUR = 'Four'


class Purpose(str, Enum):
    BUY = 'Buy'
    RENT = 'Rent'


class Timeline(str, Enum):
    """How soon the buyer expects to close (months)"""
    ZERO_TO_THREE = 'ZeroToThree'
    THREE_TO_SIX = 'ThreeToSix'
    MORE_THAN_SIX = 'MoreThanSix'
    EXPLORING = 'Exploring'


class Source(str, Enum):
    """Where the lead came from"""
    WEBSITE = 'Website'
    REFERRAL = 'Referral'
    WALK_IN = 'WalkIn'
    CALL = 'Call'
    OTHER = 'Other'


class BuyerStatus(str, Enum):
    """Pipeline stage of a buyer lead"""
    NEW = 'New'
    QUALIFIED = 'Qualified'
    CONTACTED = 'Contacted'
    VISITED = 'Visited'
    NEGOTIATION = 'Negotiation'
    CONVERTED = 'Converted'
    DROPPED = 'Dropped'


def enum_values(enum_class) -> Tuple[str, ...]:
    """Canonical labels of an enum, in declaration order"""
    return tuple(member.value for member in enum_class)


# Enum-valued buyer fields, keyed by their CSV header / API name
ENUM_FIELDS = {
    'city': City,
    'propertyType': PropertyType,
    'bhk': BHK,
    'purpose': Purpose,
    'timeline': Timeline,
    'source': Source,
    'status': BuyerStatus,
}

# Property types that must carry a BHK size, and the ones that must not
BHK_REQUIRED_TYPES = (PropertyType.APARTMENT.value, PropertyType.VILLA.value)
BHK_FORBIDDEN_TYPES = (PropertyType.PLOT.value, PropertyType.OFFICE.value, PropertyType.RETAIL.value)
