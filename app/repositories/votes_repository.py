"""
Repository for Votes database operations
"""

from sqlalchemy import insert, select

from models.votes import Votes


class VotesRepository:
    """Repository for Votes database operations"""

    @staticmethod
    def insert(connection, vote_id, file_id, text, vote):
        return connection.execute(
            insert(Votes.__table__).values(vote_id=vote_id, file_id=file_id, text=text, vote=vote)
        )

    @staticmethod
    def get_for_file(connection, file_id):
        """Votes rows for one file, in vote_id order"""
        return connection.execute(
            select(Votes.__table__).where(Votes.file_id == file_id).order_by(Votes.vote_id)
        ).all()
