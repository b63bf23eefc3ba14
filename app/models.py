import uuid

from sqlalchemy import JSON, Column, DateTime, Integer, String, Text
from sqlalchemy.sql import func

from .database import Base


def generate_business_id():
    """Generate the UUID primary key for a new business"""
    return str(uuid.uuid4())


class Business(Base):
    """A tenant. Row-level security scopes every query to the owner's businesses."""

    __tablename__ = "businesses"

    id = Column(String(36), primary_key=True, default=generate_business_id)
    owner_id = Column(String(128), index=True, nullable=False)  # Firebase uid of the owner
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    # Address is stored flat and exposed nested as {street, city, department, postalCode}
    street = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    department = Column(String(100), index=True, nullable=True)
    postal_code = Column(String(20), nullable=True)
    phone = Column(String(20), nullable=True)  # +57 XXX XXX XXXX
    whatsapp_number = Column(String(20), nullable=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    settings = Column(JSON, default=dict, nullable=True)  # {timezone, currency, businessHours[], ...}
    # Bumped on every settings write; clients send it back to detect concurrent edits
    version = Column(Integer, default=1, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())
