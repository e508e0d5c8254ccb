"""
Repository for Files database operations
"""

from sqlalchemy import func, insert, select

from models.files import Files


class FilesRepository:
    """Repository for Files database operations"""

    @staticmethod
    def insert(connection, values):
        """Insert one row; `values` is positional, in column order"""
        return connection.execute(insert(Files.__table__).values(tuple(values)))

    @staticmethod
    def get_by_id(connection, id):
        """Get the Files row with this ID, or None"""
        return connection.execute(select(Files.__table__).where(Files.id == id)).first()

    @staticmethod
    def get_by_path(connection, dir, filename):
        """Get the Files row for dir + filename, or None"""
        return connection.execute(
            select(Files.__table__).where(Files.dir == dir, Files.filename == filename)
        ).first()

    @staticmethod
    def get_by_checksum(connection, checksum):
        """All Files rows sharing a content checksum, by ID"""
        return connection.execute(
            select(Files.__table__).where(Files.checksum == checksum).order_by(Files.id)
        ).all()

    @staticmethod
    def exists(connection, id):
        return connection.execute(select(Files.id).where(Files.id == id)).first() is not None

    @staticmethod
    def count(connection):
        """Count total Files records"""
        return connection.execute(select(func.count()).select_from(Files.__table__)).scalar_one()

    @staticmethod
    def max_id(connection):
        """Highest file ID in the catalog, or None when empty"""
        return connection.execute(select(func.max(Files.id))).scalar()
