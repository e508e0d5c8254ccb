"""
Schema definition files

The catalog schema lives in an INI file with one section per schema block:

    [table_files]
    description = The 'files' table
    notes = One row per idGames Archive file
    sql = CREATE TABLE files (
        id INTEGER PRIMARY KEY,
        ...
        )
    checksum = 3oBGlYZ7mmuHfh0ZzXAm3g

Each block's checksum is the md5 (unpadded base64) of that block's
description, notes and sql, so blocks can be compared one at a time
against what a catalog database recorded when it was bootstrapped.
"""
import configparser
import json
import logging
import os
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from checksums import block_checksum
from exceptions import CatalogError, ErrorKind

BLOCK_FIELDS = ("description", "notes", "sql")


def normalize_text(text):
    """Strip every line and drop leading/trailing blank lines; INI values round-trip in this form"""
    if text is None:
        return ""
    lines = [line.strip() for line in str(text).splitlines()]
    while lines and not lines[0]:
        lines.pop(0)
    while lines and not lines[-1]:
        lines.pop()
    return "\n".join(lines)


@dataclass
class SchemaBlock:
    name: str
    description: str = ""
    notes: str = ""
    sql: str = ""
    checksum: Optional[str] = None

    def __post_init__(self):
        self.description = normalize_text(self.description)
        self.notes = normalize_text(self.notes)
        self.sql = normalize_text(self.sql)

    def compute_checksum(self) -> str:
        return block_checksum(self.description, self.notes, self.sql)

    def to_dict(self):
        return {
            "description": self.description,
            "notes": self.notes,
            "sql": self.sql,
            "checksum": self.checksum,
        }


class SchemaDefinition:
    """Named schema blocks, always iterated in block-name order"""

    def __init__(self, blocks=None):
        self._blocks: Dict[str, SchemaBlock] = {}
        for block in blocks or []:
            self.add(block)

    def add(self, block: SchemaBlock):
        if block.name in self._blocks:
            raise ValueError(f"Duplicate schema block '{block.name}'")
        self._blocks[block.name] = block

    def __getitem__(self, name) -> SchemaBlock:
        return self._blocks[name]

    def __contains__(self, name):
        return name in self._blocks

    def __len__(self):
        return len(self._blocks)

    def __iter__(self):
        return iter(self.blocks())

    def names(self) -> List[str]:
        return sorted(self._blocks)

    def blocks(self) -> List[SchemaBlock]:
        return [self._blocks[name] for name in self.names()]

    def checksum_all(self) -> "SchemaDefinition":
        for block in self.blocks():
            block.checksum = block.compute_checksum()
        return self

    def verify(self) -> List[str]:
        """Names of blocks whose stored checksum is missing or stale"""
        return [block.name for block in self.blocks() if block.checksum != block.compute_checksum()]

    def checksums(self) -> Dict[str, str]:
        return {block.name: block.checksum for block in self.blocks()}

    def dump(self) -> str:
        return json.dumps({block.name: block.to_dict() for block in self.blocks()}, indent=2, sort_keys=True)


def _new_parser():
    # No comment syntax: SQL lines starting with '#' or ';' are part of the value
    return configparser.ConfigParser(interpolation=None, comment_prefixes=())


class SchemaDefinitionLoader:
    def __init__(self, filename, logger=None):
        self.filename = filename
        self.logger = logger or logging.getLogger("main")

    def read(self) -> Tuple[Optional[SchemaDefinition], Optional[CatalogError]]:
        """Parse the INI file; returns (SchemaDefinition, None) or (None, CatalogError)"""
        self.logger.debug(f"Reading INI file {self.filename}")
        parser = _new_parser()
        try:
            with open(self.filename, "r", encoding="utf-8") as ini_file:
                parser.read_file(ini_file)
        except (OSError, configparser.Error) as e:
            self.logger.error(f"Can't read INI file {self.filename}: {e}")
            return None, CatalogError(
                kind=ErrorKind.SCHEMA_READ,
                message=f"Can't read schema file {self.filename}",
                raw=str(e),
                context="schema.read_ini_config",
            )

        definition = SchemaDefinition()
        for name in parser.sections():
            section = parser[name]
            if "sql" not in section:
                return None, CatalogError(
                    kind=ErrorKind.SCHEMA_READ,
                    message=f"Schema block '{name}' has no 'sql' field",
                    context="schema.read_ini_config",
                )
            definition.add(SchemaBlock(
                name=name,
                description=section.get("description", ""),
                notes=section.get("notes", ""),
                sql=section.get("sql", ""),
                checksum=section.get("checksum") or None,
            ))

        self.logger.debug(f"Database transaction keys are: {', '.join(definition.names())}")
        return definition, None

    def write(self, definition: SchemaDefinition, filename=None) -> Optional[CatalogError]:
        """Write the definition (with whatever checksums it carries) back out as INI"""
        write_filename = filename or self.filename
        parser = _new_parser()
        for block in definition.blocks():
            parser[block.name] = {key: value for key, value in block.to_dict().items() if value is not None}

        self.logger.debug(f"Writing INI file {write_filename}")
        tmp_filename = f"{write_filename}.tmp"
        try:
            with open(tmp_filename, "w", encoding="utf-8") as ini_file:
                parser.write(ini_file)
            os.replace(tmp_filename, write_filename)
        except OSError as e:
            self.logger.error(f"Error writing INI file: {e}")
            if os.path.exists(tmp_filename):
                os.remove(tmp_filename)
            return CatalogError(
                kind=ErrorKind.SCHEMA_WRITE,
                message=f"Can't write schema file {write_filename}",
                raw=str(e),
                context="schema.write_ini_config",
            )
        return None

    def load(self) -> Tuple[Optional[SchemaDefinition], Optional[CatalogError]]:
        """Read and fill in fresh checksums"""
        definition, error = self.read()
        if error:
            return None, error
        stale = definition.verify()
        if stale:
            self.logger.debug(f"Recomputing checksums for block(s): {', '.join(stale)}")
        return definition.checksum_all(), None
