"""Fixture directory loading.

A fixture directory holds one streaming test case:

    mapping.json        mapping document for the job
    datasource*.json    input records, one JSON document per line
    output*.nt|.nq      expected statements, one per line
    output*.json        expected output as a JSON-LD document

Relative paths are resolved against an explicit fixtures root first, then
against the sample cases shipped with the package.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from streamcheck.cluster.mapping import MappingDocument
from streamcheck.core.domain.errors import FixtureError
from streamcheck.core.domain.types import TestCase

LOGGER = logging.getLogger(__name__)

PACKAGED_FIXTURES_ROOT = Path(__file__).resolve().parent

MAPPING_FILE = "mapping.json"
INPUT_PREFIX = "datasource"
OUTPUT_PREFIX = "output"
JSON_SUFFIXES = frozenset({".json", ".jsonld"})


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise FixtureError(f"cannot read {path}: {exc}") from exc


def _non_blank_lines(text: str) -> list[str]:
    return [line.strip() for line in text.splitlines() if line.strip()]


class FixtureLoader:
    def __init__(self, root: Path | None = None) -> None:
        self._root = Path(root) if root is not None else None

    def resolve(self, path: str | Path) -> Path:
        """Return the fixture directory for a relative or absolute path."""
        candidates: list[Path] = []
        if self._root is not None:
            candidates.append(self._root / path)
        candidates.append(PACKAGED_FIXTURES_ROOT / path)
        candidates.append(Path(path))

        for candidate in candidates:
            if candidate.is_dir():
                return candidate

        raise FixtureError(f"fixture directory not found: {path}")

    def list_input_files(self, folder: Path) -> list[str]:
        """Input records of all datasource files, in file order."""
        records: list[str] = []
        for path in sorted(folder.glob(f"{INPUT_PREFIX}*")):
            if path.is_file():
                records.extend(_non_blank_lines(_read_text(path)))
        return records

    def list_expected_output_files(self, folder: Path) -> list[set[str]]:
        """One record set per expected output file."""
        record_sets: list[set[str]] = []
        for path in sorted(folder.glob(f"{OUTPUT_PREFIX}*")):
            if not path.is_file():
                continue
            text = _read_text(path)
            if path.suffix in JSON_SUFFIXES:
                record_sets.append({text.strip()} if text.strip() else set())
            else:
                record_sets.append(set(_non_blank_lines(text)))
        return record_sets

    def load_mapping(self, folder: Path) -> MappingDocument:
        path = folder / MAPPING_FILE
        if not path.is_file():
            raise FixtureError(f"missing {MAPPING_FILE} in {folder}")

        try:
            return MappingDocument.from_json_obj(json.loads(_read_text(path)))
        except json.JSONDecodeError as exc:
            raise FixtureError(f"{path} is not valid JSON: {exc}") from exc
        except ValidationError as exc:
            raise FixtureError(f"{path} is not a valid mapping: {exc}") from exc

    def load_test_case(self, path: str | Path) -> TestCase:
        folder = self.resolve(path)

        input_records = self.list_input_files(folder)
        if not input_records:
            raise FixtureError(f"no {INPUT_PREFIX}* records in {folder}")

        expected: set[str] = set()
        for record_set in self.list_expected_output_files(folder):
            expected |= record_set

        LOGGER.info(
            "Loaded test case",
            extra={
                "test_case": folder.name,
                "input_count": len(input_records),
                "expected_count": len(expected),
            },
        )
        return TestCase(
            name=folder.name,
            folder=folder,
            input_records=tuple(input_records),
            expected_output=frozenset(expected),
        )
