"""
Client database model.

Only the fields the rating engine reads: identity and the assigned price table.
"""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey
from sqlalchemy.sql import func
from freight_backend.app.db.session import Base


class Client(Base):
    """Client (shipper) with an optional contracted price table."""
    __tablename__ = "clients"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    name = Column(String(200), nullable=False)

    # Pricing plan (nullable: clients may not have a plan yet)
    price_table_id = Column(Integer, ForeignKey('price_tables.id'), nullable=True, index=True)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    def __repr__(self):
        return f"<Client(id={self.id}, name='{self.name}', price_table_id={self.price_table_id})>"
