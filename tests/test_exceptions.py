"""
Tests for error values and exceptions
"""
from sqlalchemy import exc as sa_exc

from exceptions import CatalogError, ErrorKind, ErrorLevel, database_error


class TestCatalogError:
    """Tests for CatalogError"""

    def test_to_dict(self):
        error = CatalogError(kind=ErrorKind.PARSE, message='bad body', raw='line 1', context='json.parse')
        assert error.to_dict() == {
            'error': True,
            'kind': 'parse',
            'context': 'json.parse',
            'message': 'bad body',
            'raw': 'line 1',
            'level': ErrorLevel.ERROR,
        }
        assert not error.is_fatal

    def test_str(self):
        assert str(CatalogError(kind='transport', message='down', raw='reset')) == '[transport] down (reset)'
        assert str(CatalogError(kind='transport', message='down')) == '[transport] down'


class TestDatabaseError:
    """Tests for mapping SQLAlchemy exceptions"""

    def test_schema_problems_are_prepare(self):
        exc = sa_exc.OperationalError('SELECT * FROM files', {}, Exception('no such table: files'))
        error = database_error(exc, 'get_file_by_id')
        assert error.kind == ErrorKind.DATABASE_PREPARE
        assert error.raw == 'no such table: files'
        assert error.context == 'get_file_by_id'

    def test_data_problems_are_execute(self):
        exc = sa_exc.IntegrityError('INSERT INTO files', {}, Exception('UNIQUE constraint failed: files.id'))
        error = database_error(exc, 'file_insert')
        assert error.kind == ErrorKind.DATABASE_EXECUTE
        assert 'UNIQUE' in error.raw


    def test_locked_database_is_execute(self):
        """Test runtime OperationalErrors are not reported as schema problems"""
        for message in ('database is locked', 'disk I/O error'):
            exc = sa_exc.OperationalError('INSERT INTO files', {}, Exception(message))
            assert database_error(exc, 'file_insert').kind == ErrorKind.DATABASE_EXECUTE

    def test_syntax_error_is_prepare(self):
        exc = sa_exc.OperationalError('SELEC 1', {}, Exception('near "SELEC": syntax error'))
        assert database_error(exc, 'bootstrap').kind == ErrorKind.DATABASE_PREPARE
