"""
Tests for schema definition files
"""
import pytest

from exceptions import ErrorKind
from schema_loader import SchemaBlock, SchemaDefinition, SchemaDefinitionLoader, normalize_text

SCHEMA_INI = """[02_table_votes]
description = The 'votes' table
notes = Reviews for each file.
sql = CREATE TABLE votes (
	vote_id INTEGER NOT NULL,
	file_id INTEGER NOT NULL
	)

[01_table_files]
description = The 'files' table
notes = One row per file.
	Column order is significant.
sql = CREATE TABLE files (
	id INTEGER PRIMARY KEY,
	filename TEXT NOT NULL
	)
"""


@pytest.fixture
def schema_file(tmp_path):
    path = tmp_path / 'schema.ini'
    path.write_text(SCHEMA_INI)
    return str(path)


class TestSchemaDefinitionLoader:
    """Tests for reading and writing schema INI files"""

    def test_read_orders_blocks_by_name(self, schema_file, mock_logger):
        definition, error = SchemaDefinitionLoader(schema_file, logger=mock_logger).read()
        assert error is None
        assert definition.names() == ['01_table_files', '02_table_votes']
        block = definition['01_table_files']
        assert block.notes == 'One row per file.\nColumn order is significant.'
        assert block.sql.startswith('CREATE TABLE files (\nid INTEGER PRIMARY KEY,')
        assert block.checksum is None

    def test_round_trip(self, schema_file, tmp_path):
        """Test a written definition reads back with identical blocks and checksums"""
        definition, error = SchemaDefinitionLoader(schema_file).load()
        assert error is None
        output = str(tmp_path / 'written.ini')
        assert SchemaDefinitionLoader(schema_file).write(definition, filename=output) is None

        reread, error = SchemaDefinitionLoader(output).read()
        assert error is None
        assert reread.names() == definition.names()
        for name in definition.names():
            assert reread[name].description == definition[name].description
            assert reread[name].notes == definition[name].notes
            assert reread[name].sql == definition[name].sql
            assert reread[name].checksum == definition[name].checksum
        assert reread.verify() == []

    def test_round_trip_keeps_comment_lines(self, tmp_path):
        """Test SQL lines starting with '#' or ';' survive write then read"""
        definition = SchemaDefinition()
        definition.add(SchemaBlock(
            name='01_table_a',
            description='Table a',
            notes='; not a comment',
            sql='CREATE TABLE a (\n# comment\nx INTEGER)',
        ))
        definition.checksum_all()
        output = str(tmp_path / 'comments.ini')
        assert SchemaDefinitionLoader(output).write(definition) is None

        reread, error = SchemaDefinitionLoader(output).read()
        assert error is None
        assert reread['01_table_a'].sql == 'CREATE TABLE a (\n# comment\nx INTEGER)'
        assert reread['01_table_a'].notes == '; not a comment'
        assert reread.verify() == []

    def test_checksums_are_per_block(self, schema_file, tmp_path):
        """Test a block's checksum does not depend on the other blocks in the file"""
        definition, _ = SchemaDefinitionLoader(schema_file).load()

        alone = tmp_path / 'alone.ini'
        alone.write_text(SCHEMA_INI.split('\n\n')[0] + '\n')
        only_votes, _ = SchemaDefinitionLoader(str(alone)).load()

        assert only_votes['02_table_votes'].checksum == definition['02_table_votes'].checksum
        assert definition['01_table_files'].checksum != definition['02_table_votes'].checksum

    def test_missing_file(self, tmp_path):
        definition, error = SchemaDefinitionLoader(str(tmp_path / 'nope.ini')).read()
        assert definition is None
        assert error.kind == ErrorKind.SCHEMA_READ

    def test_block_without_sql(self, tmp_path):
        path = tmp_path / 'bad.ini'
        path.write_text('[broken]\ndescription = no sql here\n')
        definition, error = SchemaDefinitionLoader(str(path)).read()
        assert definition is None
        assert error.kind == ErrorKind.SCHEMA_READ
        assert 'broken' in error.message

    def test_write_to_missing_directory(self, schema_file, tmp_path):
        definition, _ = SchemaDefinitionLoader(schema_file).load()
        error = SchemaDefinitionLoader(schema_file).write(definition, filename=str(tmp_path / 'no' / 'such.ini'))
        assert error.kind == ErrorKind.SCHEMA_WRITE

    def test_shipped_schema(self, schema_definition):
        """Test the shipped schema file defines the catalog tables"""
        assert schema_definition.names() == [
            '01_table_files',
            '02_table_votes',
            '03_index_files_checksum',
            '04_table_schema_blocks',
        ]
        assert schema_definition.verify() == []


class TestSchemaDefinition:
    """Tests for the in-memory definition"""

    def test_duplicate_block(self):
        definition = SchemaDefinition([SchemaBlock('a', sql='SELECT 1')])
        with pytest.raises(ValueError):
            definition.add(SchemaBlock('a', sql='SELECT 2'))

    def test_verify_reports_stale_checksums(self):
        definition = SchemaDefinition([SchemaBlock('a', sql='SELECT 1'), SchemaBlock('b', sql='SELECT 2')])
        definition.checksum_all()
        definition['b'].sql = 'SELECT 3'
        assert definition.verify() == ['b']

    def test_dump_is_json(self):
        definition = SchemaDefinition([SchemaBlock('a', description='x', sql='SELECT 1')]).checksum_all()
        assert '"description": "x"' in definition.dump()

    def test_normalize_text(self):
        assert normalize_text('\n  first  \n\tsecond\n\n') == 'first\nsecond'
        assert normalize_text(None) == ''
