"""
relmap Core — configuration, data model, scoring, pattern mining, and merging.

Re-exports the primary classes for convenience::

    from relmap.core import RelationshipBuilder, FunctionDescriptor, CodeSnippet
"""

from relmap.core.builder import (
    RelationshipBuilder,
    build_relationships,
    merge_relationships,
    relationship_score,
)
from relmap.core.config import RelationshipSchema, RelmapConfig
from relmap.core.engine import (
    AnalysisResult,
    CodeSnippet,
    FunctionDescriptor,
    NameMatcher,
    Parameter,
    RelationshipMap,
    RelationshipType,
    StrengthFactorKind,
    load_inputs,
    name_similarity,
    types_compatible,
)
from relmap.core.formatting import ResultFormatter

__all__ = [
    "RelmapConfig",
    "RelationshipSchema",
    "RelationshipBuilder",
    "build_relationships",
    "merge_relationships",
    "relationship_score",
    "AnalysisResult",
    "CodeSnippet",
    "FunctionDescriptor",
    "NameMatcher",
    "Parameter",
    "RelationshipMap",
    "RelationshipType",
    "StrengthFactorKind",
    "load_inputs",
    "name_similarity",
    "types_compatible",
    "ResultFormatter",
]
