"""
Models package

Table definitions for the catalog database.  The tables themselves are
created from the schema blocks in catalog_schema.ini; these declarations
mirror that DDL column for column, in the same order.

- files.py
- votes.py
- schema_blocks.py
"""

from .files import Files
from .votes import Votes
from .schema_blocks import SchemaBlocks

__all__ = [
    "Files",
    "Votes",
    "SchemaBlocks",
]
