"""
Files model - one row per idGames Archive file.
"""

from sqlalchemy import Column, Float, Index, Integer, String, Text, UniqueConstraint

from db import Base


class Files(Base):
    """Column order is the positional order used by ArchiveRecord.serialize()"""

    __tablename__ = "files"

    id = Column(Integer, primary_key=True, autoincrement=False)
    title = Column(String)
    dir = Column(String, nullable=False)
    filename = Column(String, nullable=False)
    size = Column(Integer)
    date = Column(String)  # YYYY-MM-DD
    author = Column(String)
    email = Column(String)
    description = Column(Text)
    credits = Column(Text)
    base = Column(Text)
    buildtime = Column(String)
    editors = Column(Text)
    bugs = Column(Text)
    rating = Column(Float)
    vote_count = Column(Integer)
    checksum = Column(String)  # md5 of the raw file bytes
    levels = Column(Text)  # comma separated level lump names

    __table_args__ = (
        UniqueConstraint("dir", "filename", name="uq_files_dir_filename"),
        Index("ix_files_checksum", "checksum"),
    )

    def __repr__(self):
        return f"<Files(id={self.id}, path={self.dir}{self.filename})>"
