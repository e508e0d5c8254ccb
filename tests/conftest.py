"""
Pytest fixtures and configuration for wadcatalog tests
"""
import json
import os
import struct
import sys
import zipfile
from unittest.mock import MagicMock

import pytest

# Add app directory to path
sys.path.insert(0, os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), 'app'))


@pytest.fixture
def mock_logger():
    """Create a mock logger for testing"""
    logger = MagicMock()
    logger.info = MagicMock()
    logger.error = MagicMock()
    logger.warning = MagicMock()
    logger.debug = MagicMock()
    return logger


@pytest.fixture
def sample_content():
    """'content' block of an idGames API 'get' response"""
    return {
        'id': 1042,
        'title': 'Bogus Level',
        'dir': 'levels/doom/a-c/',
        'filename': 'bogus.zip',
        'size': 30721,
        'date': '1995-03-14',
        'author': 'A. Mapper',
        'email': 'mapper@example.com',
        'description': 'A single level for Doom.',
        'credits': 'id Software',
        'base': 'New from scratch',
        'buildtime': '2 weeks',
        'editors': 'DEU',
        'bugs': 'None known',
        'rating': 3.5,
        'votes': 2,
        'url': 'https://www.doomworld.com/idgames/levels/doom/a-c/bogus',
        'idgamesurl': 'idgames://1042',
        'reviews': {
            'review': [
                {'text': 'Great map', 'vote': '5'},
                {'text': 'Too dark', 'vote': '2'},
            ]
        },
    }


def json_response(content=None, error=None):
    """Raw body of a JSON API response"""
    payload = {'meta': {'version': 3}}
    if content is not None:
        payload['content'] = content
    if error is not None:
        payload['error'] = error
    return json.dumps(payload).encode('utf-8')


@pytest.fixture
def json_body(sample_content):
    return json_response(content=sample_content)


@pytest.fixture
def json_error_body():
    return json_response(error={'type': 'Missing file', 'message': 'The file requested could not be found.'})


@pytest.fixture
def xml_body():
    return b"""<?xml version="1.0" encoding="UTF-8"?>
<idgames-response version="3">
  <content>
    <id>1042</id>
    <title>Bogus Level</title>
    <dir>levels/doom/a-c/</dir>
    <filename>bogus.zip</filename>
    <size>30721</size>
    <date>1995-03-14</date>
    <author>A. Mapper</author>
    <rating>3.5</rating>
    <votes>1</votes>
    <reviews>
      <review>
        <text>Great map</text>
        <vote>5</vote>
      </review>
    </reviews>
  </content>
</idgames-response>
"""


def build_wad(path, lumps, magic=b'PWAD', broken=()):
    """
    Write a WAD file: header, lump data, then the directory.

    Lumps named in `broken` get a directory entry pointing past the end of
    the file, so open() rejects the WAD.
    """
    data = b''.join(content for _, content in lumps)
    directory_offset = 12 + len(data)
    file_size = directory_offset + 16 * len(lumps)

    entries = []
    offset = 12
    for name, content in lumps:
        if name in broken:
            entries.append(struct.pack('<ii8s', file_size - 4, len(content) + 1024, name.encode('ascii')))
        else:
            entries.append(struct.pack('<ii8s', offset, len(content), name.encode('ascii')))
        offset += len(content)

    with open(path, 'wb') as f:
        f.write(struct.pack('<4sii', magic, len(lumps), directory_offset))
        f.write(data)
        f.write(b''.join(entries))
    return str(path)


def build_zip(path, members, compression=zipfile.ZIP_DEFLATED):
    with zipfile.ZipFile(path, 'w', compression=compression) as zf:
        for name, content in members:
            zf.writestr(name, content)
    return str(path)


@pytest.fixture
def make_wad(tmp_path):
    def _make(name='test.wad', lumps=None, **kwargs):
        if lumps is None:
            lumps = [('MAP01', b''), ('THINGS', b'\x01' * 10), ('MAP02', b''), ('LINEDEFS', b'\x02' * 14)]
        return build_wad(tmp_path / name, lumps, **kwargs)
    return _make


@pytest.fixture
def make_zip(tmp_path):
    def _make(name='test.zip', members=None, **kwargs):
        if members is None:
            members = [('readme.txt', b'hello\n'), ('maps/bogus.wad', b'PWAD' + b'\x00' * 8)]
        return build_zip(tmp_path / name, members, **kwargs)
    return _make


@pytest.fixture
def schema_definition():
    from constants import SCHEMA_FILE
    from schema_loader import SchemaDefinitionLoader

    definition, error = SchemaDefinitionLoader(SCHEMA_FILE).load()
    assert error is None
    return definition


@pytest.fixture
def empty_store(mock_logger):
    """Connected in-memory catalog with no schema applied"""
    from catalog import CatalogStore

    store = CatalogStore(':memory:', logger=mock_logger)
    assert store.connect() is None
    yield store
    store.close()


@pytest.fixture
def store(empty_store, schema_definition):
    """Connected in-memory catalog with the shipped schema applied"""
    assert empty_store.bootstrap(schema_definition) is None
    return empty_store


@pytest.fixture
def sample_record(sample_content):
    from parsers import normalize_content
    from records import ArchiveRecord

    record = ArchiveRecord()
    assert record.populate({'content': normalize_content(sample_content)}) is None
    record.checksum = 'd41d8cd98f00b204e9800998ecf8427e'
    record.levels = ['E1M1', 'E1M2']
    return record
