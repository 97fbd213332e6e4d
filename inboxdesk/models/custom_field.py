"""Custom field definitions attached to an Account's contacts."""

import enum

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint

from inboxdesk.database import Base, utcnow


class FieldType(str, enum.Enum):
    text = "text"
    number = "number"
    date = "date"
    dropdown = "dropdown"
    checkbox = "checkbox"
    url = "url"
    email = "email"
    phone = "phone"


class CustomField(Base):
    __tablename__ = "custom_fields"

    id = Column(Integer, primary_key=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(64), nullable=False)  # machine name, e.g. "company_size"
    label = Column(String(200), nullable=False)
    field_type = Column(String(20), nullable=False)
    options = Column(JSON, nullable=True)
    is_required = Column(Boolean, nullable=False, default=False)
    is_searchable = Column(Boolean, nullable=False, default=True)
    display_order = Column(Integer, nullable=False, default=0)
    default_value = Column(String(500), nullable=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (UniqueConstraint("account_id", "name", name="uq_custom_field_account_name"),)
