"""
Tests for indexing local archive files
"""
import os

from checksums import file_checksum
from conftest import build_wad, build_zip
from exceptions import ErrorKind
from indexer import find_duplicates, index_record, is_wad_member
from records import ArchiveRecord


def mirror_file(root, record):
    path = record.local_path(str(root))
    os.makedirs(os.path.dirname(path), exist_ok=True)
    return path


class TestIndexRecord:
    """Tests for index_record"""

    def test_zip_with_wads(self, tmp_path, mock_logger):
        """Test levels from every WAD in a zip are collected, sorted and unique"""
        record = ArchiveRecord(id=1, dir='levels/doom2/a-c/', filename='bogus.zip')
        path = mirror_file(tmp_path / 'mirror', record)

        first = build_wad(tmp_path / 'first.wad', [('MAP02', b''), ('THINGS', b'x'), ('MAP01', b'')])
        second = build_wad(tmp_path / 'second.wad', [('MAP01', b''), ('MAP03', b'')])
        build_zip(path, [
            ('bogus.txt', b'readme'),
            ('wads/FIRST.WAD', open(first, 'rb').read()),
            ('second.wad', open(second, 'rb').read()),
        ])

        temp_dir = tmp_path / 'tmp'
        temp_dir.mkdir()
        indexed, error = index_record(record, str(tmp_path / 'mirror'), temp_dir=str(temp_dir), logger=mock_logger)
        assert error is None
        assert indexed is record
        assert record.levels == ['MAP01', 'MAP02', 'MAP03']
        assert record.checksum == file_checksum(path)
        # Extracted WADs are cleaned up
        assert os.listdir(temp_dir) == []

    def test_zip_wads_with_same_basename(self, tmp_path):
        """Test WADs sharing a file name in different zip folders all contribute levels"""
        record = ArchiveRecord(id=6, dir='levels/doom/', filename='pack.zip')
        path = mirror_file(tmp_path / 'mirror', record)
        doom = build_wad(tmp_path / 'doom.wad', [('E1M1', b'')])
        doom2 = build_wad(tmp_path / 'doom2.wad', [('MAP01', b'')])
        build_zip(path, [
            ('doom/map.wad', open(doom, 'rb').read()),
            ('doom2/map.wad', open(doom2, 'rb').read()),
        ])

        _, error = index_record(record, str(tmp_path / 'mirror'))
        assert error is None
        assert record.levels == ['E1M1', 'MAP01']

    def test_zip_without_wads(self, tmp_path):
        record = ArchiveRecord(id=2, dir='music/', filename='tunes.zip')
        path = mirror_file(tmp_path, record)
        build_zip(path, [('tunes.txt', b'midi pack')])
        _, error = index_record(record, str(tmp_path))
        assert error is None
        assert record.levels == []
        assert record.checksum == file_checksum(path)

    def test_standalone_wad(self, tmp_path):
        record = ArchiveRecord(id=3, dir='levels/doom/', filename='e1.wad')
        path = mirror_file(tmp_path, record)
        build_wad(path, [('E1M2', b''), ('E1M1', b'')], magic=b'IWAD')
        _, error = index_record(record, str(tmp_path))
        assert error is None
        assert record.levels == ['E1M1', 'E1M2']

    def test_missing_local_file(self, tmp_path):
        record = ArchiveRecord(id=4, dir='levels/doom/', filename='gone.zip')
        indexed, error = index_record(record, str(tmp_path))
        assert error.kind == ErrorKind.CONTAINER_READ
        assert indexed.checksum is None

    def test_broken_wad_inside_zip(self, tmp_path):
        """Test an unreadable WAD member fails only this record"""
        record = ArchiveRecord(id=5, dir='levels/doom/', filename='broken.zip')
        path = mirror_file(tmp_path, record)
        build_zip(path, [('broken.wad', b'JUNK' + b'\x00' * 8)])
        temp_dir = tmp_path / 'tmp'
        temp_dir.mkdir()
        _, error = index_record(record, str(tmp_path), temp_dir=str(temp_dir))
        assert error.kind == ErrorKind.CONTAINER_READ
        assert record.levels == []
        assert os.listdir(temp_dir) == []

    def test_is_wad_member(self):
        assert is_wad_member('maps/THING.WAD')
        assert not is_wad_member('readme.txt')


class TestFindDuplicates:
    """Tests for content-identity lookups"""

    def test_find_duplicates(self, store):
        store.add_file(ArchiveRecord(id=1, dir='levels/doom/a-c/', filename='one.zip', checksum='abc'))
        store.add_file(ArchiveRecord(id=2, dir='levels/doom/d-f/', filename='copy.zip', checksum='abc'))
        store.add_file(ArchiveRecord(id=3, dir='levels/doom/g-i/', filename='other.zip', checksum='def'))
        paths, error = find_duplicates(store, 'abc')
        assert error is None
        assert paths == ['levels/doom/a-c/one.zip', 'levels/doom/d-f/copy.zip']

    def test_find_duplicates_of_record(self, store):
        original = ArchiveRecord(id=1, dir='levels/doom/a-c/', filename='one.zip', checksum='abc')
        store.add_file(original)
        paths, error = find_duplicates(store, original)
        assert error is None
        assert paths == ['levels/doom/a-c/one.zip']

    def test_store_error(self, empty_store):
        paths, error = find_duplicates(empty_store, 'abc')
        assert paths == []
        assert error.kind == ErrorKind.DATABASE_PREPARE
