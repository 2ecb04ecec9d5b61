"""
relmap Core Engine

Data model, name matching, lexical scoring, and the two global indices
(co-occurrence and semantic similarity) that the relationship builder
reads from.

Every index here is built in a single pass and is read-only afterwards,
so one set of indices can be shared by all per-function assembly steps.
Cost is O(n²) in function count times O(corpus size) for the substring
scans; :class:`CorpusIndex` records substring presence per snippet once
so later stages never rescan whole snippets for names they lack.
"""

import json
import logging
import re
from dataclasses import dataclass, asdict, field, replace
from datetime import datetime
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from rapidfuzz.distance import Levenshtein

from relmap.core.config import RelmapConfig
from relmap.exceptions import InputFormatError, ProcessingError

logger = logging.getLogger(__name__)


# =============================================================================
# Closed Vocabularies
# =============================================================================

class FunctionCategory(Enum):
    ARRAY_MANIPULATION = "array-manipulation"
    OBJECT_MANIPULATION = "object-manipulation"
    STRING_PROCESSING = "string-processing"
    UTILITY = "utility"
    ASYNC = "async"
    VALIDATION = "validation"
    TRANSFORMATION = "transformation"
    FILTERING = "filtering"
    AGGREGATION = "aggregation"
    FACTORY = "factory"
    PREDICATE = "predicate"
    GETTER = "getter"
    SETTER = "setter"
    ACTION = "action"


class Complexity(Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class SnippetSource(Enum):
    """Where a corpus snippet was mined from."""
    DOCUMENTATION_BLOCK = "documentation-block"
    USAGE_EXAMPLE = "usage-example"
    EXAMPLE_FILE = "example-file"


class ExampleSource(Enum):
    README = "readme"
    EXAMPLES = "examples"
    DOCUMENTATION = "documentation"
    TYPE_DEFINITIONS = "type-definitions"


class RelationshipType(Enum):
    COMMONLY_USED_WITH = "commonly-used-with"
    ALTERNATIVE_TO = "alternative-to"
    PREREQUISITE_FOR = "prerequisite-for"
    EXTENDS = "extends"
    REPLACES = "replaces"
    COMPOSES_WITH = "composes-with"
    TRANSFORMS_OUTPUT_OF = "transforms-output-of"
    VALIDATES_INPUT_FOR = "validates-input-for"
    ERROR_HANDLER_FOR = "error-handler-for"
    CONFIGURATION_FOR = "configuration-for"


class StrengthFactorKind(Enum):
    CO_OCCURRENCE = "co-occurrence"
    PARAMETER_COMPATIBILITY = "parameter-compatibility"
    RETURN_TYPE_COMPATIBILITY = "return-type-compatibility"
    SEMANTIC_SIMILARITY = "semantic-similarity"
    DOCUMENTATION_MENTION = "documentation-mention"
    USAGE_PATTERN_SIMILARITY = "usage-pattern-similarity"


class SemanticSignal(Enum):
    """The four independent checks of the semantic scorer."""
    PARAMETER_COMPATIBLE = "parameter-compatible"
    RETURN_COMPATIBLE = "return-compatible"
    NAME_SIMILAR = "name-similar"
    CATEGORY_SIMILAR = "category-similar"


# Exhaustive: every SemanticSignal has exactly one entry in each table.
SEMANTIC_RELATIONSHIP_TYPES: Mapping[SemanticSignal, RelationshipType] = MappingProxyType({
    SemanticSignal.PARAMETER_COMPATIBLE: RelationshipType.TRANSFORMS_OUTPUT_OF,
    SemanticSignal.RETURN_COMPATIBLE: RelationshipType.ALTERNATIVE_TO,
    SemanticSignal.NAME_SIMILAR: RelationshipType.ALTERNATIVE_TO,
    SemanticSignal.CATEGORY_SIMILAR: RelationshipType.COMMONLY_USED_WITH,
})

SEMANTIC_STRENGTH_FACTORS: Mapping[SemanticSignal, StrengthFactorKind] = MappingProxyType({
    SemanticSignal.PARAMETER_COMPATIBLE: StrengthFactorKind.PARAMETER_COMPATIBILITY,
    SemanticSignal.RETURN_COMPATIBLE: StrengthFactorKind.RETURN_TYPE_COMPATIBILITY,
    SemanticSignal.NAME_SIMILAR: StrengthFactorKind.SEMANTIC_SIMILARITY,
    SemanticSignal.CATEGORY_SIMILAR: StrengthFactorKind.SEMANTIC_SIMILARITY,
})


class ErrorType(Enum):
    PROCESSING_ERROR = "PROCESSING_ERROR"


def _jsonable(value: Any) -> Any:
    """Convert enums, tuples and nested containers into JSON-friendly values."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


def _coerce_enum(enum_cls, value, field_name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError as exc:
        allowed = ", ".join(m.value for m in enum_cls)
        raise InputFormatError(
            f"Invalid {field_name} {value!r}; expected one of: {allowed}"
        ) from exc


# =============================================================================
# Data Models: inputs
# =============================================================================

@dataclass(frozen=True)
class Parameter:
    name: str
    type: str
    optional: bool = False
    description: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Parameter":
        return cls(
            name=data.get("name", ""),
            type=data.get("type", "any"),
            optional=bool(data.get("optional", False)),
            description=data.get("description", "") or "",
        )

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass(frozen=True)
class FunctionDescriptor:
    """An extracted API function.  ``name`` is the unique key within a run."""
    name: str
    parameters: Tuple[Parameter, ...] = ()
    return_type: str = "any"
    description: str = ""
    category: FunctionCategory = FunctionCategory.UTILITY
    complexity: Complexity = Complexity.BEGINNER
    use_cases: Tuple[str, ...] = ()
    is_async: bool = False
    examples: Tuple[str, ...] = ()
    """Working example code attached to the function by the extractor."""

    def __post_init__(self):
        # Accept lists and enum values from callers; store tuples and enums.
        object.__setattr__(self, "parameters", tuple(self.parameters))
        object.__setattr__(self, "use_cases", tuple(self.use_cases))
        object.__setattr__(self, "examples", tuple(self.examples))
        object.__setattr__(self, "category", _coerce_enum(FunctionCategory, self.category, "category"))
        object.__setattr__(self, "complexity", _coerce_enum(Complexity, self.complexity, "complexity"))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FunctionDescriptor":
        """Build a descriptor from a dict using snake_case or camelCase keys."""
        if "name" not in data:
            raise InputFormatError(f"Function descriptor is missing 'name': {dict(data)!r}")
        examples = []
        for example in data.get("examples") or data.get("workingExamples") or []:
            examples.append(example.get("code", "") if isinstance(example, Mapping) else example)
        return cls(
            name=data["name"],
            parameters=tuple(
                p if isinstance(p, Parameter) else Parameter.from_dict(p)
                for p in data.get("parameters") or []
            ),
            return_type=data.get("return_type", data.get("returnType", "any")),
            description=data.get("description", "") or "",
            category=data.get("category", FunctionCategory.UTILITY.value),
            complexity=data.get("complexity", Complexity.BEGINNER.value),
            use_cases=tuple(
                data.get("use_cases") or data.get("useCases") or data.get("commonUseCase") or ()
            ),
            is_async=bool(data.get("is_async", data.get("isAsync", False))),
            examples=tuple(examples),
        )

    def to_dict(self) -> dict:
        return _jsonable(asdict(self))


@dataclass(frozen=True)
class CodeSnippet:
    """A block of source text from the documentation or example corpus."""
    code: str
    language: str = "javascript"
    source: SnippetSource = SnippetSource.DOCUMENTATION_BLOCK
    title: str = ""
    description: str = ""
    origin: str = ""
    """File path for example files; empty for inline documentation."""

    def __post_init__(self):
        object.__setattr__(self, "source", _coerce_enum(SnippetSource, self.source, "snippet source"))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "CodeSnippet":
        code = data.get("code", data.get("content"))
        return cls(
            code=code,
            language=data.get("language", "javascript") or "javascript",
            source=data.get("source", SnippetSource.DOCUMENTATION_BLOCK.value),
            title=data.get("title", data.get("context", "")) or "",
            description=data.get("description", "") or "",
            origin=data.get("origin", data.get("filePath", "")) or "",
        )

    def to_dict(self) -> dict:
        return _jsonable(asdict(self))


# =============================================================================
# Data Models: relationships
# =============================================================================

@dataclass
class StrengthFactor:
    factor: StrengthFactorKind
    weight: float
    evidence: str

    def to_dict(self) -> dict:
        return _jsonable(asdict(self))


@dataclass
class RelationshipExample:
    title: str
    code: str
    language: str
    explanation: str
    demonstrates: str
    source: ExampleSource

    def to_dict(self) -> dict:
        return _jsonable(asdict(self))


@dataclass
class RelationshipCandidate:
    """One piece of evidence from a single scoring strategy.

    Produced by the co-occurrence, semantic, workflow, prerequisite and
    alternative strategies; consumed by :func:`merge_relationships`.
    """
    source_function: str
    target_function: str
    relationship_type: RelationshipType
    strength: float
    confidence: float
    factor: StrengthFactorKind
    evidence: str
    evidence_count: int = 1
    context: str = ""
    examples: List[str] = field(default_factory=list)
    context_examples: List[RelationshipExample] = field(default_factory=list)
    use_case_reasons: List[str] = field(default_factory=list)

    def to_relationship(self) -> "EnhancedRelationship":
        return EnhancedRelationship(
            function_name=self.target_function,
            relationship_type=self.relationship_type,
            strength=self.strength,
            confidence=self.confidence,
            evidence_count=self.evidence_count,
            context=self.context,
            examples=list(self.examples),
            context_examples=list(self.context_examples),
            use_case_reasons=list(self.use_case_reasons),
            strength_factors=[StrengthFactor(self.factor, _clamp(self.strength), self.evidence)],
        )


@dataclass
class EnhancedRelationship:
    """A merged relationship from one function to ``function_name``."""
    function_name: str
    relationship_type: RelationshipType
    strength: float
    confidence: float
    evidence_count: int = 1
    context: str = ""
    examples: List[str] = field(default_factory=list)
    context_examples: List[RelationshipExample] = field(default_factory=list)
    use_case_reasons: List[str] = field(default_factory=list)
    strength_factors: List[StrengthFactor] = field(default_factory=list)

    def __post_init__(self):
        self.strength = _clamp(self.strength)
        self.confidence = _clamp(self.confidence)
        self.evidence_count = max(1, int(self.evidence_count))

    @property
    def score(self) -> float:
        """Ranking key: strength × confidence."""
        return self.strength * self.confidence

    @property
    def key(self) -> Tuple[str, RelationshipType]:
        return (self.function_name, self.relationship_type)

    def copy(self) -> "EnhancedRelationship":
        """Shallow copy with fresh list containers."""
        return replace(
            self,
            examples=list(self.examples),
            context_examples=list(self.context_examples),
            use_case_reasons=list(self.use_case_reasons),
            strength_factors=list(self.strength_factors),
        )

    def merged_with(self, other: "EnhancedRelationship") -> "EnhancedRelationship":
        """Combine two relationships sharing the same (target, type) key."""
        return replace(
            self,
            strength=max(self.strength, other.strength),
            confidence=max(self.confidence, other.confidence),
            evidence_count=self.evidence_count + other.evidence_count,
            examples=self.examples + other.examples,
            context_examples=self.context_examples + other.context_examples,
            use_case_reasons=self.use_case_reasons + other.use_case_reasons,
            strength_factors=self.strength_factors + other.strength_factors,
        )

    def to_dict(self) -> dict:
        return _jsonable(asdict(self))


@dataclass
class WorkflowStep:
    step: int
    description: str
    functions: List[str]
    example: str
    language: str = "javascript"

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class PrerequisiteChain:
    target: str
    prerequisites: List[str]
    reason: str
    example: str
    occurrences: Dict[str, int] = field(default_factory=dict)
    """Times each prerequisite was seen above the target across the corpus."""

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class AlternativeOption:
    function_name: str
    pros: List[str]
    cons: List[str]
    best_for: List[str]
    performance_notes: str = ""

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class AlternativeGroup:
    purpose: str
    alternatives: List[AlternativeOption]
    recommendation: str

    def includes(self, function_name: str) -> bool:
        return any(opt.function_name == function_name for opt in self.alternatives)

    @property
    def members(self) -> List[str]:
        return [opt.function_name for opt in self.alternatives]

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ContextualInfo:
    common_use_cases: List[str] = field(default_factory=list)
    typical_workflows: List[WorkflowStep] = field(default_factory=list)
    prerequisite_chains: List[PrerequisiteChain] = field(default_factory=list)
    alternative_groups: List[AlternativeGroup] = field(default_factory=list)

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class RelationshipMap:
    """Per-function output of the engine."""
    function_name: str
    relationships: List[EnhancedRelationship]
    relationship_score: float
    contextual_info: ContextualInfo

    def find(
        self,
        function_name: str,
        relationship_type: Optional[RelationshipType] = None,
    ) -> Optional[EnhancedRelationship]:
        """Return the first kept relationship to *function_name* (optionally of one type)."""
        for rel in self.relationships:
            if rel.function_name != function_name:
                continue
            if relationship_type is None or rel.relationship_type == relationship_type:
                return rel
        return None

    def to_dict(self) -> dict:
        return _jsonable(asdict(self))


# =============================================================================
# Result Wrapper
# =============================================================================

@dataclass
class AnalysisError:
    type: ErrorType
    message: str
    recoverable: bool = False
    suggestions: List[str] = field(default_factory=list)
    details: Optional[str] = None

    def to_dict(self) -> dict:
        return _jsonable(asdict(self))


@dataclass
class ResultMetadata:
    processing_time_ms: float
    timestamp: str
    version: str
    source: str = "relationship-builder"
    function_count: int = 0
    snippet_count: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class AnalysisResult:
    """Either the relationship maps or a structured failure, plus warnings.

    Exactly one of :attr:`data` / :attr:`error` is set.
    """
    success: bool
    metadata: ResultMetadata
    data: Optional[List[RelationshipMap]] = None
    error: Optional[AnalysisError] = None
    warnings: List[str] = field(default_factory=list)

    @classmethod
    def ok(cls, data: List[RelationshipMap], metadata: ResultMetadata,
           warnings: Optional[List[str]] = None) -> "AnalysisResult":
        return cls(success=True, metadata=metadata, data=data, warnings=list(warnings or []))

    @classmethod
    def fail(cls, error: AnalysisError, metadata: ResultMetadata,
             warnings: Optional[List[str]] = None) -> "AnalysisResult":
        return cls(success=False, metadata=metadata, error=error, warnings=list(warnings or []))

    def unwrap(self) -> List[RelationshipMap]:
        """Return :attr:`data`, or raise :class:`ProcessingError` for a failed run."""
        if not self.success:
            raise ProcessingError(self.error.message if self.error else "Relationship building failed")
        return self.data

    def to_dict(self) -> dict:
        return _jsonable(asdict(self))


# =============================================================================
# Name Matching & Lexical Scoring
# =============================================================================

class NameMatcher:
    """
    Locates function names inside snippet text.

    Default mode is plain substring matching, so ``map`` also matches
    inside ``flatMap``.  With ``word_boundary=True`` a name only matches
    when not flanked by identifier characters.
    """

    _IDENT_CHARS = r"A-Za-z0-9_$"

    def __init__(self, word_boundary: bool = False):
        self.word_boundary = word_boundary
        self._patterns: Dict[str, "re.Pattern[str]"] = {}

    def _pattern(self, name: str) -> "re.Pattern[str]":
        pattern = self._patterns.get(name)
        if pattern is None:
            pattern = re.compile(
                rf"(?<![{self._IDENT_CHARS}]){re.escape(name)}(?![{self._IDENT_CHARS}])"
            )
            self._patterns[name] = pattern
        return pattern

    def find(self, text: str, name: str) -> int:
        """Index of the first occurrence of *name* in *text*, or -1."""
        if not self.word_boundary:
            return text.find(name)
        match = self._pattern(name).search(text)
        return match.start() if match else -1

    def contains(self, text: str, name: str) -> bool:
        return self.find(text, name) >= 0


def name_similarity(name1: str, name2: str) -> float:
    """``1 - levenshtein(lower(a), lower(b)) / max(len(a), len(b))``."""
    longest = max(len(name1), len(name2))
    if longest == 0:
        return 1.0
    distance = Levenshtein.distance(name1.lower(), name2.lower())
    return 1.0 - distance / longest


def normalize_type(type_text: str) -> str:
    """Strip all whitespace and lower-case a type expression."""
    return re.sub(r"\s", "", type_text).lower()


def types_compatible(type1: str, type2: str) -> bool:
    """
    Textual type match.

    Exact match after normalisation; otherwise array types compare their
    element type (first ``[]`` removed) and generic types compare their
    base (text before the first ``<``).
    """
    norm1 = normalize_type(type1)
    norm2 = normalize_type(type2)

    if norm1 == norm2:
        return True
    if "[]" in norm1 and "[]" in norm2:
        return norm1.replace("[]", "", 1) == norm2.replace("[]", "", 1)
    if "<" in norm1 and "<" in norm2:
        return norm1.split("<", 1)[0] == norm2.split("<", 1)[0]
    return False


# =============================================================================
# Corpus Index (substring-presence cache)
# =============================================================================

class CorpusIndex:
    """
    Records which function names occur in which snippets.

    Built once per run.  Per-snippet name tuples keep function-list
    order, which downstream stages rely on for deterministic output.
    """

    def __init__(self, snippets: Sequence[CodeSnippet], names: Sequence[str],
                 matcher: NameMatcher):
        self.snippets: Tuple[CodeSnippet, ...] = tuple(snippets)
        self.names: Tuple[str, ...] = tuple(dict.fromkeys(names))
        self.matcher = matcher

        present: List[Tuple[str, ...]] = []
        by_name: Dict[str, List[int]] = {name: [] for name in self.names}
        for idx, snippet in enumerate(self.snippets):
            found = tuple(n for n in self.names if matcher.contains(snippet.code, n))
            present.append(found)
            for name in found:
                by_name[name].append(idx)

        self._present: Tuple[Tuple[str, ...], ...] = tuple(present)
        self._by_name: Mapping[str, Tuple[int, ...]] = MappingProxyType(
            {name: tuple(ids) for name, ids in by_name.items()}
        )

    def names_in(self, snippet_idx: int) -> Tuple[str, ...]:
        """Function names present in a snippet, in function-list order."""
        return self._present[snippet_idx]

    def snippets_with(self, name: str) -> Tuple[int, ...]:
        return self._by_name.get(name, ())

    def snippets_with_all(self, *names: str) -> List[int]:
        """Snippet indices (ascending) containing every one of *names*."""
        if not names:
            return []
        shared = set(self.snippets_with(names[0]))
        for name in names[1:]:
            shared &= set(self.snippets_with(name))
        return sorted(shared)

    def examples_for(self, name1: str, name2: str, config: RelmapConfig) -> List[RelationshipExample]:
        """Up to ``max_context_examples`` snippets that show both functions."""
        examples: List[RelationshipExample] = []
        for idx in self.snippets_with_all(name1, name2):
            snippet = self.snippets[idx]
            examples.append(self._example_from_snippet(snippet, name1, name2, config))
            if len(examples) >= config.max_context_examples:
                break
        return examples

    @staticmethod
    def _example_from_snippet(snippet: CodeSnippet, name1: str, name2: str,
                              config: RelmapConfig) -> RelationshipExample:
        if snippet.source is SnippetSource.USAGE_EXAMPLE:
            return RelationshipExample(
                title=snippet.title or f"{name1} and {name2} usage",
                code=snippet.code,
                language=snippet.language,
                explanation=snippet.description or f"Usage example with {name1} and {name2}",
                demonstrates="Co-occurrence in usage example",
                source=ExampleSource.README,
            )
        if snippet.source is SnippetSource.EXAMPLE_FILE:
            limit = config.example_file_chars
            code = snippet.code[:limit] + ("..." if len(snippet.code) > limit else "")
            origin = snippet.origin or snippet.title or "example file"
            return RelationshipExample(
                title=f"Example from {origin}",
                code=code,
                language=snippet.language,
                explanation=f"Example from {origin} showing both functions",
                demonstrates="Co-occurrence in example file",
                source=ExampleSource.EXAMPLES,
            )
        return RelationshipExample(
            title=snippet.title or f"{name1} and {name2} example",
            code=snippet.code,
            language=snippet.language,
            explanation=f"Example showing {name1} and {name2} used together",
            demonstrates="Co-occurrence in code example",
            source=ExampleSource.README,
        )


# =============================================================================
# Co-occurrence Index
# =============================================================================

@dataclass(frozen=True)
class CooccurrenceEdge:
    weight: float
    """Cumulative proximity weight across snippets."""
    snippets: int
    """Number of snippets in which the pair co-occurs."""


def proximity_weight(code: str, name1: str, name2: str, matcher: NameMatcher,
                     config: RelmapConfig) -> float:
    """
    ``max(1, 3 - |first(a) - first(b)| / 100)``; 1 when either index is missing.

    A distance of 0 (``map`` found at the start of ``mapValues``) weighs
    the full 3; there is no ``distance > 0`` guard falling back to 1.
    """
    index1 = matcher.find(code, name1)
    index2 = matcher.find(code, name2)
    if index1 < 0 or index2 < 0:
        return 1.0
    distance = abs(index1 - index2)
    return max(1.0, config.proximity_max_weight - distance / config.proximity_scale)


class CooccurrenceIndex:
    """
    Sparse symmetric adjacency: function name → (other name → edge).

    Use :meth:`build` to construct; the adjacency is frozen afterwards.
    Neighbour iteration order is first-seen order over the corpus.
    """

    def __init__(self, adjacency: Mapping[str, Mapping[str, CooccurrenceEdge]],
                 config: RelmapConfig):
        self._adjacency = MappingProxyType(
            {name: MappingProxyType(dict(edges)) for name, edges in adjacency.items()}
        )
        self._config = config

    @classmethod
    def build(cls, corpus: CorpusIndex, config: RelmapConfig) -> "CooccurrenceIndex":
        weights: Dict[str, Dict[str, float]] = {name: {} for name in corpus.names}
        counts: Dict[str, Dict[str, int]] = {name: {} for name in corpus.names}

        for idx, snippet in enumerate(corpus.snippets):
            found = corpus.names_in(idx)
            for i, name1 in enumerate(found):
                for name2 in found[i + 1:]:
                    weight = proximity_weight(snippet.code, name1, name2, corpus.matcher, config)
                    for a, b in ((name1, name2), (name2, name1)):
                        weights[a][b] = weights[a].get(b, 0.0) + weight
                        counts[a][b] = counts[a].get(b, 0) + 1

        adjacency = {
            name: {other: CooccurrenceEdge(w, counts[name][other]) for other, w in edges.items()}
            for name, edges in weights.items()
        }
        pairs = sum(len(edges) for edges in adjacency.values()) // 2
        logger.debug(f"Co-occurrence index: {len(adjacency)} functions, {pairs} pairs")
        return cls(adjacency, config)

    def neighbours(self, name: str) -> Mapping[str, CooccurrenceEdge]:
        return self._adjacency.get(name, MappingProxyType({}))

    def weight(self, name1: str, name2: str) -> float:
        edge = self.neighbours(name1).get(name2)
        return edge.weight if edge else 0.0

    def strength(self, name1: str, name2: str) -> float:
        """Cumulative weight / 10, saturating at 1."""
        return min(self.weight(name1, name2) / self._config.cooccurrence_strength_saturation, 1.0)

    def confidence(self, name1: str, name2: str) -> float:
        return min(self.weight(name1, name2) / self._config.cooccurrence_confidence_saturation, 1.0)


# =============================================================================
# Semantic Similarity
# =============================================================================

@dataclass(frozen=True)
class SemanticMatch:
    target: str
    signal: SemanticSignal
    strength: float
    reason: str

    @property
    def relationship_type(self) -> RelationshipType:
        return SEMANTIC_RELATIONSHIP_TYPES[self.signal]

    @property
    def factor(self) -> StrengthFactorKind:
        return SEMANTIC_STRENGTH_FACTORS[self.signal]


class SemanticScorer:
    """Signature- and name-based similarity between every ordered pair."""

    def __init__(self, config: Optional[RelmapConfig] = None):
        self.config = config or RelmapConfig()

    def score_pair(self, source: FunctionDescriptor,
                   target: FunctionDescriptor) -> List[SemanticMatch]:
        """Run the four independent checks; each hit is a separate match."""
        weights = self.config.relationship_weights
        matches: List[SemanticMatch] = []

        for param in target.parameters:
            if types_compatible(source.return_type, param.type):
                matches.append(SemanticMatch(
                    target=target.name,
                    signal=SemanticSignal.PARAMETER_COMPATIBLE,
                    strength=weights["parameter_compatibility"],
                    reason=(
                        f"{source.name} returns {source.return_type} which can be used "
                        f"as {param.name} parameter in {target.name}"
                    ),
                ))
                break

        if types_compatible(source.return_type, target.return_type):
            matches.append(SemanticMatch(
                target=target.name,
                signal=SemanticSignal.RETURN_COMPATIBLE,
                strength=weights["return_compatibility"],
                reason=(
                    f"Both functions return compatible types: "
                    f"{source.return_type} and {target.return_type}"
                ),
            ))

        similarity = name_similarity(source.name, target.name)
        if similarity > self.config.name_similarity_threshold:
            matches.append(SemanticMatch(
                target=target.name,
                signal=SemanticSignal.NAME_SIMILAR,
                strength=similarity,
                reason="Similar function names suggest related functionality",
            ))

        if source.category == target.category:
            matches.append(SemanticMatch(
                target=target.name,
                signal=SemanticSignal.CATEGORY_SIMILAR,
                strength=weights["category_match"],
                reason=f"Both functions belong to {source.category.value} category",
            ))

        return matches

    def build_index(self, functions: Sequence[FunctionDescriptor]) -> Mapping[str, Tuple[SemanticMatch, ...]]:
        """Semantic matches for every function, keyed by name (first descriptor wins)."""
        index: Dict[str, Tuple[SemanticMatch, ...]] = {}
        for func in functions:
            if func.name in index:
                continue
            matches: List[SemanticMatch] = []
            for other in functions:
                if other.name == func.name:
                    continue
                matches.extend(self.score_pair(func, other))
            index[func.name] = tuple(matches)
        logger.debug(
            f"Semantic index: {sum(len(m) for m in index.values())} matches "
            f"across {len(index)} functions"
        )
        return MappingProxyType(index)


# =============================================================================
# Utility Functions
# =============================================================================

def flatten_corpus(
    code_blocks: Iterable[Mapping[str, Any]] = (),
    usage_examples: Iterable[Mapping[str, Any]] = (),
    example_files: Iterable[Mapping[str, Any]] = (),
) -> List[CodeSnippet]:
    """
    Flatten extractor output into one snippet list.

    Order is documentation blocks, then usage examples, then example files.
    """
    snippets: List[CodeSnippet] = []
    for block in code_blocks:
        snippets.append(CodeSnippet(
            code=block.get("code", ""),
            language=block.get("language") or "javascript",
            source=SnippetSource.DOCUMENTATION_BLOCK,
            title=block.get("context", block.get("title", "")) or "",
        ))
    for usage in usage_examples:
        snippets.append(CodeSnippet(
            code=usage.get("code", ""),
            language=usage.get("language") or "javascript",
            source=SnippetSource.USAGE_EXAMPLE,
            title=usage.get("title", "") or "",
            description=usage.get("description", "") or "",
        ))
    for example in example_files:
        snippets.append(CodeSnippet(
            code=example.get("content", example.get("code", "")),
            language=example.get("language") or "javascript",
            source=SnippetSource.EXAMPLE_FILE,
            origin=example.get("filePath", example.get("origin", "")) or "",
        ))
    return snippets


def load_inputs(path: Path) -> Tuple[List[FunctionDescriptor], List[CodeSnippet]]:
    """
    Read functions and corpus from a JSON document.

    Accepted shapes::

        {"functions": [...], "corpus": [...]}
        {"functions": [...], "readme": {"codeBlocks": [...], "usageExamples": [...]},
         "examples": [...]}

    Raises :class:`InputFormatError` when the document is not usable.
    """
    try:
        document = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise InputFormatError(f"{path} is not valid JSON: {exc}") from exc

    if not isinstance(document, dict) or not isinstance(document.get("functions"), list):
        raise InputFormatError(f"{path} must contain an object with a 'functions' list")

    functions = [FunctionDescriptor.from_dict(item) for item in document["functions"]]

    if "corpus" in document:
        corpus = [
            CodeSnippet(code=item) if isinstance(item, str) else CodeSnippet.from_dict(item)
            for item in document["corpus"] or []
        ]
    else:
        readme = document.get("readme") or {}
        corpus = flatten_corpus(
            readme.get("codeBlocks") or [],
            readme.get("usageExamples") or [],
            document.get("examples") or [],
        )

    logger.info(f"Loaded {len(functions)} functions and {len(corpus)} snippets from {path}")
    return functions, corpus


def now_iso() -> str:
    return datetime.now().isoformat()
