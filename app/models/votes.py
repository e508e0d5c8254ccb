"""
Votes model - reviews attached to a file.
"""

from sqlalchemy import Column, Float, ForeignKey, Integer, Text

from db import Base


class Votes(Base):
    __tablename__ = "votes"

    vote_id = Column(Integer, primary_key=True, autoincrement=False)  # 1..n per file
    file_id = Column(Integer, ForeignKey("files.id"), primary_key=True)
    text = Column(Text)
    vote = Column(Float)
