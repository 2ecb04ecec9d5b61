"""
relmap Configuration Module

Centralized configuration for the relationship inference engine, plus the
closed vocabularies (relationship types, strength factors, categories)
that every scoring strategy draws from.

Each run receives a :class:`RelmapConfig` instance; nothing here is
global mutable state.
"""

import os
from dataclasses import dataclass, field


# =============================================================================
# Instance-Based Configuration
# =============================================================================

@dataclass
class RelmapConfig:
    """
    Instance-based configuration for relmap.

    Every value has a default matching the reference heuristics, so
    ``RelmapConfig()`` reproduces the canonical scoring.  Create from
    environment variables::

        config = RelmapConfig.from_env()

    Or with explicit values::

        config = RelmapConfig(word_boundary_matching=True)
    """

    # ── Ranking ───────────────────────────────────────────────────
    max_relationships: int = 10
    """Relationships kept per function after merging and sorting."""

    # ── Co-occurrence ─────────────────────────────────────────────
    proximity_scale: float = 100.0
    """Characters of distance that cost one unit of proximity weight."""
    proximity_max_weight: float = 3.0
    cooccurrence_strength_saturation: float = 10.0
    cooccurrence_confidence_saturation: float = 5.0

    # ── Semantic ──────────────────────────────────────────────────
    name_similarity_threshold: float = 0.6

    # ── Prerequisites ─────────────────────────────────────────────
    prerequisite_window: int = 3
    prerequisite_example_chars: int = 200

    # ── Evidence ──────────────────────────────────────────────────
    max_context_examples: int = 3
    example_file_chars: int = 500

    # ── Name matching ─────────────────────────────────────────────
    word_boundary_matching: bool = False
    """If True, function names only match at identifier boundaries
    (``map`` no longer matches inside ``flatMap``)."""

    # Fixed strengths/confidences of the rule-based strategies.
    relationship_weights: dict = field(default_factory=lambda: {
        "parameter_compatibility": 0.8,
        "return_compatibility": 0.6,
        "category_match": 0.7,
        "workflow_strength": 0.7,
        "workflow_confidence": 0.8,
        "prerequisite_strength": 0.8,
        "prerequisite_confidence": 0.9,
        "alternative_strength": 0.6,
        "alternative_confidence": 0.7,
    })

    # ── Logging ───────────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # ── Factory ───────────────────────────────────────────────────

    @classmethod
    def from_env(cls) -> "RelmapConfig":
        """Build a config snapshot from current environment variables.

        Reads :envvar:`RELMAP_MAX_RELATIONSHIPS`,
        :envvar:`RELMAP_PREREQ_WINDOW`, :envvar:`RELMAP_WORD_BOUNDARY`
        (1/true/yes/on) and :envvar:`RELMAP_LOG_LEVEL`.
        """
        boundary_raw = os.getenv("RELMAP_WORD_BOUNDARY", "").lower()
        return cls(
            max_relationships=int(os.getenv("RELMAP_MAX_RELATIONSHIPS", "10")),
            prerequisite_window=int(os.getenv("RELMAP_PREREQ_WINDOW", "3")),
            word_boundary_matching=boundary_raw in ("1", "true", "yes", "on"),
            log_level=os.getenv("RELMAP_LOG_LEVEL", "INFO").upper(),
        )

    # ── Validation ────────────────────────────────────────────────

    def validate(self) -> bool:
        """
        Check that numeric tunables are usable.

        Raises :class:`~relmap.exceptions.ConfigError` on failure.
        """
        from relmap.exceptions import ConfigError

        if self.max_relationships < 1:
            raise ConfigError(
                f"max_relationships must be >= 1, got {self.max_relationships}.\n"
                "  Set via: export RELMAP_MAX_RELATIONSHIPS=10"
            )
        if self.prerequisite_window < 1:
            raise ConfigError(
                f"prerequisite_window must be >= 1, got {self.prerequisite_window}.\n"
                "  Set via: export RELMAP_PREREQ_WINDOW=3"
            )
        for name in ("proximity_scale", "cooccurrence_strength_saturation",
                     "cooccurrence_confidence_saturation"):
            if getattr(self, name) <= 0:
                raise ConfigError(f"{name} must be positive, got {getattr(self, name)}")
        if not 0.0 <= self.name_similarity_threshold <= 1.0:
            raise ConfigError(
                "name_similarity_threshold must be within [0, 1], "
                f"got {self.name_similarity_threshold}"
            )
        for key, value in self.relationship_weights.items():
            if not 0.0 <= value <= 1.0:
                raise ConfigError(f"relationship_weights['{key}'] must be within [0, 1], got {value}")
        return True

    def weight(self, key: str) -> float:
        """Return a fixed strategy weight by key."""
        return self.relationship_weights[key]


# =============================================================================
# Vocabulary Tables
# =============================================================================

class RelationshipSchema:
    """
    Descriptions of the closed vocabularies used by the engine.

    Keys are the wire values of the corresponding enums in
    :mod:`relmap.core.engine`.
    """

    RELATIONSHIP_TYPES = {
        "commonly-used-with": "Functions that appear together in the same examples",
        "alternative-to": "Functions that can substitute for one another",
        "prerequisite-for": "Functions typically called before the target",
        "extends": "Functions that build on the target's behaviour",
        "replaces": "Functions that supersede the target",
        "composes-with": "Functions chained together in a workflow",
        "transforms-output-of": "Functions whose output feeds the target's parameters",
        "validates-input-for": "Functions that check the target's input",
        "error-handler-for": "Functions that handle the target's failures",
        "configuration-for": "Functions that configure the target",
    }

    STRENGTH_FACTORS = {
        "co-occurrence": "Names appear in the same snippet",
        "parameter-compatibility": "Return type matches a parameter type",
        "return-type-compatibility": "Return types match",
        "semantic-similarity": "Similar names or shared category",
        "documentation-mention": "Mentioned together in documentation",
        "usage-pattern-similarity": "Used in the same workflow or call order",
    }

    CATEGORIES = {
        "array-manipulation": "Create, reshape or iterate arrays",
        "object-manipulation": "Read, merge or reshape objects",
        "string-processing": "Format, parse or transform strings",
        "utility": "General helpers",
        "async": "Promises, scheduling and concurrency",
        "validation": "Check values against rules",
        "transformation": "Convert values between shapes",
        "filtering": "Select a subset of values",
        "aggregation": "Combine many values into one",
        "factory": "Construct new instances",
        "predicate": "Return a boolean about a value",
        "getter": "Read a property or state",
        "setter": "Write a property or state",
        "action": "Perform a side effect",
    }

    @classmethod
    def format_for_console(cls) -> str:
        """Render all vocabularies as an indented plain-text listing."""
        return f"""
RELATIONSHIP TYPES:
{chr(10).join(f"- {code}: {desc}" for code, desc in cls.RELATIONSHIP_TYPES.items())}

STRENGTH FACTORS:
{chr(10).join(f"- {code}: {desc}" for code, desc in cls.STRENGTH_FACTORS.items())}

FUNCTION CATEGORIES:
{chr(10).join(f"- {code}: {desc}" for code, desc in cls.CATEGORIES.items())}
"""
