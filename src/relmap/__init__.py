"""
relmap — Function-Relationship Inference Engine.

Given the API functions of a library and a corpus of documentation and
example code, ``relmap`` infers how the functions relate to one another
(used together, alternatives, prerequisites, composition, data flow) and
builds a ranked relationship map per function.

Quick start (programmatic API)::

    from relmap import build_relationships, FunctionDescriptor, CodeSnippet

    result = build_relationships(functions, corpus)
    for rel_map in result.unwrap():
        print(rel_map.function_name, [r.function_name for r in rel_map.relationships])

Quick start (CLI)::

    relmap build inputs.json
    relmap build inputs.json --format json

Configuration override::

    from relmap import RelationshipEngine, RelmapConfig

    engine = RelationshipEngine(config=RelmapConfig(max_relationships=5))
"""

__version__ = "1.0.0"

# Primary public API: the engine facade and one-shot function
from relmap.client import RelationshipEngine
from relmap.core.builder import build_relationships

# Configuration
from relmap.core.config import RelmapConfig

# Core data types that callers interact with
from relmap.core.engine import (
    AnalysisResult,
    CodeSnippet,
    EnhancedRelationship,
    FunctionDescriptor,
    Parameter,
    RelationshipMap,
    RelationshipType,
)

# Exception hierarchy
from relmap.exceptions import (
    ConfigError,
    InputFormatError,
    ProcessingError,
    RelmapError,
)


def health(config: RelmapConfig | None = None) -> dict:
    """
    Return a small status dict for agents or REST health checks.

    When *config* is None, uses :meth:`RelmapConfig.from_env()` for the snapshot.
    """
    cfg = config or RelmapConfig.from_env()
    return {
        "version": __version__,
        "max_relationships": cfg.max_relationships,
        "word_boundary_matching": cfg.word_boundary_matching,
    }


__all__ = [
    "__version__",
    # Facade
    "RelationshipEngine",
    "build_relationships",
    # Config
    "RelmapConfig",
    # Data types
    "AnalysisResult",
    "CodeSnippet",
    "EnhancedRelationship",
    "FunctionDescriptor",
    "Parameter",
    "RelationshipMap",
    "RelationshipType",
    # Exceptions
    "RelmapError",
    "ConfigError",
    "ProcessingError",
    "InputFormatError",
    # Utilities
    "health",
]
