"""
SchemaBlocks model - the schema blocks a catalog was bootstrapped with.
"""

from sqlalchemy import Column, String, Text

from db import Base


class SchemaBlocks(Base):
    __tablename__ = "schema_blocks"

    name = Column(String, primary_key=True)
    description = Column(Text)
    notes = Column(Text)
    sql = Column(Text)
    checksum = Column(String, nullable=False)
    applied_at = Column(String)  # ISO 8601, UTC
