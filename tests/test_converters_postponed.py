"""
Converters on dataclasses declared under postponed annotation evaluation.

With `from __future__ import annotations` every field type is a string, so
the converter has to resolve them before building nested documents.
"""

from __future__ import annotations

import sys
import unittest
from dataclasses import dataclass
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from converters import EmbeddedDocumentConverter, QualityIntConverter
from qualities import QualityDefinition

CATALOG = [QualityDefinition(1, "SDTV", 1), QualityDefinition(7, "Bluray-1080p", 2)]


@dataclass
class SourceQuality:
    id: int


@dataclass
class SourceQualityModel:
    quality: SourceQuality
    proper: bool = False


@dataclass
class ProfileItem:
    quality: QualityDefinition
    allowed: bool


class TestPostponedAnnotations(unittest.TestCase):

    def test_nested_document_is_built(self):
        converter = EmbeddedDocumentConverter(SourceQualityModel)
        value = converter.from_db('{"quality": {"id": 7, "name": "Bluray-1080p"}, "proper": true}')

        self.assertEqual(value, SourceQualityModel(SourceQuality(7), True))

    def test_primitive_types_still_checked(self):
        converter = EmbeddedDocumentConverter(SourceQualityModel)
        value, ok = converter.try_from_db('{"quality": {"id": "7"}, "proper": true}')

        self.assertFalse(ok)
        self.assertIsNone(value)

    def test_transform_applies_to_resolved_type(self):
        converter = EmbeddedDocumentConverter(ProfileItem, QualityIntConverter(CATALOG), many=True)
        items = converter.from_db('[{"quality": 7, "allowed": true}]')

        self.assertEqual(items, [ProfileItem(CATALOG[1], True)])
        self.assertEqual(converter.to_db(items), '[{"quality":7,"allowed":true}]')


if __name__ == "__main__":
    unittest.main()
