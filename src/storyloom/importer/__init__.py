"""Import and reconciliation of analyzed story content."""

from storyloom.importer.bulk import BulkImporter, import_entities
from storyloom.importer.bundle import AnalyzedStoryBundle
from storyloom.importer.classifier import EntityKind, classify_entity
from storyloom.importer.names import build_name_index, normalize_name, resolve
from storyloom.importer.orchestrator import StoryImporter, import_analyzed_story
from storyloom.importer.results import ImportResult, StageResult, StageStatus
from storyloom.importer.upsert import (
    MatchStrategy,
    UpsertAction,
    UpsertEngine,
    UpsertResult,
)

__all__ = [
    "AnalyzedStoryBundle",
    "BulkImporter",
    "EntityKind",
    "ImportResult",
    "MatchStrategy",
    "StageResult",
    "StageStatus",
    "StoryImporter",
    "UpsertAction",
    "UpsertEngine",
    "UpsertResult",
    "build_name_index",
    "classify_entity",
    "import_analyzed_story",
    "import_entities",
    "normalize_name",
    "resolve",
]
