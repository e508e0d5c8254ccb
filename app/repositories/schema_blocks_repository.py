"""
Repository for SchemaBlocks database operations
"""

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert

from models.schema_blocks import SchemaBlocks


class SchemaBlocksRepository:
    """Repository for SchemaBlocks database operations"""

    @staticmethod
    def upsert(connection, block, applied_at):
        values = {
            "name": block.name,
            "description": block.description,
            "notes": block.notes,
            "sql": block.sql,
            "checksum": block.checksum,
            "applied_at": applied_at,
        }
        stmt = insert(SchemaBlocks.__table__).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=["name"],
            set_={key: value for key, value in values.items() if key != "name"},
        )
        return connection.execute(stmt)

    @staticmethod
    def get_checksums(connection):
        """Mapping of block name -> stored checksum"""
        rows = connection.execute(select(SchemaBlocks.name, SchemaBlocks.checksum)).all()
        return {row.name: row.checksum for row in rows}
