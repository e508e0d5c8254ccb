"""
Repositories package

Each repository encapsulates the catalog queries for one model:
- files_repository.py
- votes_repository.py
- schema_blocks_repository.py

Repositories work on a SQLAlchemy Connection owned by the caller and let
SQLAlchemy exceptions propagate; CatalogStore turns them into error values.

Usage:
    from repositories.files_repository import FilesRepository
    row = FilesRepository.get_by_id(connection, 42)
"""
