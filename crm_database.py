# crm_database.py

import json
import uuid

from extensions import db
from utils.datetime_utils import utc_now, format_utc_iso

# API / CSV field name -> Buyer column name
BUYER_FIELD_COLUMNS = {
    'fullName': 'full_name',
    'email': 'email',
    'phone': 'phone',
    'city': 'city',
    'propertyType': 'property_type',
    'bhk': 'bhk',
    'purpose': 'purpose',
    'budgetMin': 'budget_min',
    'budgetMax': 'budget_max',
    'timeline': 'timeline',
    'source': 'source',
    'notes': 'notes',
    'tags': 'tags',
    'status': 'status',
}


def _new_id() -> str:
    return str(uuid.uuid4())


class Buyer(db.Model):
    __tablename__ = 'buyers'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    full_name = db.Column(db.String(80), nullable=False)
    email = db.Column(db.Text, nullable=True)
    phone = db.Column(db.String(15), nullable=False, index=True)
    city = db.Column(db.String(20), nullable=False, index=True)
    property_type = db.Column(db.String(20), nullable=False, index=True)
    bhk = db.Column(db.String(10), nullable=True)
    purpose = db.Column(db.String(10), nullable=False)
    budget_min = db.Column(db.BigInteger, nullable=True)
    budget_max = db.Column(db.BigInteger, nullable=True)
    timeline = db.Column(db.String(20), nullable=False)
    source = db.Column(db.String(20), nullable=False)
    status = db.Column(db.String(20), nullable=False, default='New', index=True)
    notes = db.Column(db.Text, nullable=True)
    tags = db.Column(db.Text, nullable=False, default='[]')  # JSON array
    owner_id = db.Column(db.String(64), nullable=False, index=True)
    created_at = db.Column(db.DateTime, default=utc_now, nullable=False)
    updated_at = db.Column(db.DateTime, default=utc_now, onupdate=utc_now, nullable=False, index=True)

    history = db.relationship('BuyerHistory', backref='buyer', lazy=True, cascade="all, delete-orphan")

    @property
    def tag_list(self):
        try:
            tags = json.loads(self.tags or '[]')
        except ValueError:
            return []
        return tags if isinstance(tags, list) else []

    @staticmethod
    def columns_from_fields(fields):
        """Map camelCase buyer fields onto column values; tags become JSON text"""
        record = {
            column: fields[field_name]
            for field_name, column in BUYER_FIELD_COLUMNS.items()
            if field_name in fields
        }
        if 'tags' in record:
            record['tags'] = json.dumps(record['tags'] or [])
        for column in ('budget_min', 'budget_max'):
            if record.get(column) is not None:
                record[column] = int(record[column])
        return record

    def to_dict(self):
        """API representation: camelCase keys, tags decoded, ISO timestamps"""
        data = {'id': self.id}
        for field_name, column in BUYER_FIELD_COLUMNS.items():
            data[field_name] = getattr(self, column)
        data['tags'] = self.tag_list
        data['ownerId'] = self.owner_id
        data['createdAt'] = format_utc_iso(self.created_at) if self.created_at else None
        data['updatedAt'] = format_utc_iso(self.updated_at) if self.updated_at else None
        return data

    def __repr__(self):
        return f'<Buyer {self.id} {self.status}>'


class BuyerHistory(db.Model):
    __tablename__ = 'buyer_history'

    id = db.Column(db.String(36), primary_key=True, default=_new_id)
    buyer_id = db.Column(db.String(36), db.ForeignKey('buyers.id', ondelete='CASCADE'), nullable=False, index=True)
    changed_by = db.Column(db.String(64), nullable=False)
    changed_at = db.Column(db.DateTime, default=utc_now, nullable=False, index=True)
    diff = db.Column(db.Text, nullable=False)  # JSON object

    def to_dict(self):
        try:
            diff = json.loads(self.diff)
        except ValueError:
            diff = {}
        return {
            'id': self.id,
            'buyerId': self.buyer_id,
            'changedBy': self.changed_by,
            'changedAt': format_utc_iso(self.changed_at) if self.changed_at else None,
            'diff': diff,
        }
