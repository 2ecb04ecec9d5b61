"""
relmap Relationship Builder

Orchestrates one inference run:

  1. Validate inputs and index the corpus (substring presence per snippet)
  2. Build the global co-occurrence and semantic indices
  3. Mine workflow steps, prerequisite chains and alternative groups
  4. For each function: emit candidates, merge, rank, assemble context

Steps 1-3 produce read-only structures shared by every function in
step 4.  Structural input errors fail the whole run with a single
``PROCESSING_ERROR`` result; nothing is partially returned.
"""

import logging
import time
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from tqdm import tqdm

from relmap.core.config import RelmapConfig
from relmap.core.engine import (
    AlternativeGroup, AnalysisError, AnalysisResult, CodeSnippet,
    ContextualInfo, CooccurrenceIndex, CorpusIndex, EnhancedRelationship,
    ErrorType, ExampleSource, FunctionDescriptor, NameMatcher,
    PrerequisiteChain, RelationshipCandidate, RelationshipExample,
    RelationshipMap, RelationshipType, ResultMetadata, SemanticMatch,
    SemanticScorer, StrengthFactorKind, WorkflowStep, now_iso,
)
from relmap.core.patterns import (
    AlternativeGrouper, PrerequisiteChainBuilder, WorkflowExtractor,
)
from relmap.exceptions import InputFormatError, RelmapError

logger = logging.getLogger(__name__)

FAILURE_SUGGESTIONS = ["Check function data format", "Verify analysis inputs"]


# =============================================================================
# Merging & Ranking
# =============================================================================

def merge_relationships(
    candidates: Iterable[Union[RelationshipCandidate, EnhancedRelationship]],
    limit: int = 10,
) -> List[EnhancedRelationship]:
    """
    Merge candidates sharing a (target, type) key, rank, and truncate.

    Merged entries take the max strength and confidence, the summed
    evidence count, and the concatenated example/reason/factor lists.
    Ranking is a stable descending sort on strength × confidence, so
    ties keep first-emission order.  Already-merged relationships may be
    passed back in; the result is unchanged.  Inputs are not mutated.
    """
    merged: dict = {}
    for item in candidates:
        rel = item.to_relationship() if isinstance(item, RelationshipCandidate) else item
        existing = merged.get(rel.key)
        merged[rel.key] = rel.copy() if existing is None else existing.merged_with(rel)

    ranked = sorted(merged.values(), key=lambda r: r.score, reverse=True)
    return ranked[:limit]


def relationship_score(relationships: Sequence[EnhancedRelationship]) -> float:
    """Mean strength × confidence over the kept relationships (0 when empty)."""
    if not relationships:
        return 0.0
    return sum(r.score for r in relationships) / len(relationships)


def use_case_reasons(func: FunctionDescriptor, other: Optional[FunctionDescriptor]) -> List[str]:
    if other is None:
        return []
    reasons: List[str] = []
    if func.category == other.category:
        reasons.append(f"Both functions are used for {func.category.value} operations")
    shared = [u for u in func.use_cases if u in other.use_cases]
    if shared:
        reasons.append(f"Both functions are commonly used for: {', '.join(shared)}")
    return reasons


def assemble_context(
    func: FunctionDescriptor,
    workflows: Sequence[WorkflowStep],
    chains: Sequence[PrerequisiteChain],
    groups: Sequence[AlternativeGroup],
) -> ContextualInfo:
    chain = next((c for c in chains if c.target == func.name), None)
    group = next((g for g in groups if g.includes(func.name)), None)
    return ContextualInfo(
        common_use_cases=list(func.use_cases),
        typical_workflows=[s for s in workflows if func.name in s.functions],
        prerequisite_chains=[chain] if chain else [],
        alternative_groups=[group] if group else [],
    )


# =============================================================================
# Shared Indices
# =============================================================================

@dataclass(frozen=True)
class RelationshipIndices:
    """Everything built once per run and read by per-function assembly."""
    functions: Mapping[str, FunctionDescriptor]
    corpus: CorpusIndex
    cooccurrence: CooccurrenceIndex
    semantic: Mapping[str, Tuple[SemanticMatch, ...]]
    workflows: Tuple[WorkflowStep, ...]
    chains: Tuple[PrerequisiteChain, ...]
    groups: Tuple[AlternativeGroup, ...]


# =============================================================================
# Builder
# =============================================================================

class RelationshipBuilder:
    """
    Builds one :class:`RelationshipMap` per input function.

    Args:
        config: Tunables; defaults to ``RelmapConfig()``.
        show_progress: Show a tqdm bar during per-function assembly.
    """

    def __init__(self, config: Optional[RelmapConfig] = None, *, show_progress: bool = False):
        self.config = config or RelmapConfig()
        self.show_progress = show_progress
        self.matcher = NameMatcher(word_boundary=self.config.word_boundary_matching)

    # ── Public API ────────────────────────────────────────────────

    def build(self, functions: Any, corpus: Any = ()) -> AnalysisResult:
        """
        Run the full inference.

        Returns a successful :class:`AnalysisResult` with maps in input
        order, or a failed one carrying a non-recoverable
        ``PROCESSING_ERROR``.  Never raises for bad input.
        """
        started = time.perf_counter()
        warnings: List[str] = []
        function_count = snippet_count = 0

        try:
            function_list = self._validate_functions(functions)
            snippets = self._validate_corpus(corpus, warnings)
            function_count, snippet_count = len(function_list), len(snippets)
            maps = self._run(function_list, snippets, warnings)
        except (RelmapError, TypeError, AttributeError, ValueError, KeyError) as exc:
            logger.error(f"Relationship building failed: {exc}")
            error = AnalysisError(
                type=ErrorType.PROCESSING_ERROR,
                message=f"Relationship building failed: {exc}",
                recoverable=False,
                suggestions=list(FAILURE_SUGGESTIONS),
                details=type(exc).__name__,
            )
            return AnalysisResult.fail(
                error, self._metadata(started, function_count, snippet_count), warnings,
            )

        for warning in warnings:
            logger.warning(warning)
        metadata = self._metadata(started, function_count, snippet_count)
        logger.info(
            f"Built {len(maps)} relationship maps "
            f"({sum(len(m.relationships) for m in maps)} relationships) "
            f"in {metadata.processing_time_ms:.1f} ms"
        )
        return AnalysisResult.ok(maps, metadata, warnings)

    # ── Pipeline ──────────────────────────────────────────────────

    def _run(self, functions: List[FunctionDescriptor], snippets: List[CodeSnippet],
             warnings: List[str]) -> List[RelationshipMap]:
        logger.info(f"Building relationships for {len(functions)} functions "
                    f"across {len(snippets)} snippets")

        if not functions:
            return []

        indices = self.build_indices(functions, snippets, warnings)

        maps: List[RelationshipMap] = []
        for func in tqdm(functions, desc="Relating functions", unit="function",
                         disable=not self.show_progress):
            maps.append(self.build_map(func, indices))
        return maps

    def build_indices(self, functions: Sequence[FunctionDescriptor],
                      snippets: Sequence[CodeSnippet],
                      warnings: Optional[List[str]] = None) -> RelationshipIndices:
        """Steps 1-3: every structure shared across per-function assembly."""
        lookup: dict = {}
        duplicates: List[str] = []
        for func in functions:
            if func.name in lookup:
                duplicates.append(func.name)
            else:
                lookup[func.name] = func
        if duplicates and warnings is not None:
            names = ", ".join(dict.fromkeys(duplicates))
            warnings.append(
                f"Duplicate function names ({names}); the first descriptor of each is used"
            )
        unique = list(lookup.values())

        logger.debug("[1/3] Indexing corpus...")
        corpus = CorpusIndex(snippets, list(lookup), self.matcher)

        logger.debug("[2/3] Scoring co-occurrence and semantic similarity...")
        cooccurrence = CooccurrenceIndex.build(corpus, self.config)
        semantic = SemanticScorer(self.config).build_index(unique)

        logger.debug("[3/3] Mining workflows, prerequisites and alternatives...")
        workflows = WorkflowExtractor(self.matcher).extract(corpus)
        chains = PrerequisiteChainBuilder(self.matcher, self.config).build(corpus)
        groups = AlternativeGrouper().group(unique)

        return RelationshipIndices(
            functions=MappingProxyType(lookup),
            corpus=corpus,
            cooccurrence=cooccurrence,
            semantic=semantic,
            workflows=tuple(workflows),
            chains=tuple(chains),
            groups=tuple(groups),
        )

    def build_map(self, func: FunctionDescriptor, indices: RelationshipIndices) -> RelationshipMap:
        """Step 4 for one function."""
        candidates: List[RelationshipCandidate] = []
        candidates.extend(self._cooccurrence_candidates(func, indices))
        candidates.extend(self._semantic_candidates(func, indices))
        candidates.extend(self._workflow_candidates(func, indices))
        candidates.extend(self._prerequisite_candidates(func, indices))
        candidates.extend(self._alternative_candidates(func, indices))

        relationships = merge_relationships(candidates, self.config.max_relationships)
        return RelationshipMap(
            function_name=func.name,
            relationships=relationships,
            relationship_score=relationship_score(relationships),
            contextual_info=assemble_context(func, indices.workflows, indices.chains, indices.groups),
        )

    # ── Candidate emitters ────────────────────────────────────────

    def _cooccurrence_candidates(
        self, func: FunctionDescriptor, indices: RelationshipIndices,
    ) -> Iterator[RelationshipCandidate]:
        cooccurrence = indices.cooccurrence
        for other, edge in cooccurrence.neighbours(func.name).items():
            if edge.weight <= 0:
                continue
            context_examples = indices.corpus.examples_for(func.name, other, self.config)
            yield RelationshipCandidate(
                source_function=func.name,
                target_function=other,
                relationship_type=RelationshipType.COMMONLY_USED_WITH,
                strength=cooccurrence.strength(func.name, other),
                confidence=cooccurrence.confidence(func.name, other),
                factor=StrengthFactorKind.CO_OCCURRENCE,
                evidence=(
                    f"Functions appear together in {edge.snippets} snippet(s) "
                    f"(weighted score {edge.weight:.2f})"
                ),
                evidence_count=edge.snippets,
                context="Functions are commonly used together in examples",
                examples=[ex.code for ex in context_examples],
                context_examples=context_examples,
                use_case_reasons=use_case_reasons(func, indices.functions.get(other)),
            )

    def _semantic_candidates(
        self, func: FunctionDescriptor, indices: RelationshipIndices,
    ) -> Iterator[RelationshipCandidate]:
        for match in indices.semantic.get(func.name, ()):
            context_examples = indices.corpus.examples_for(func.name, match.target, self.config)
            yield RelationshipCandidate(
                source_function=func.name,
                target_function=match.target,
                relationship_type=match.relationship_type,
                strength=match.strength,
                confidence=match.strength,
                factor=match.factor,
                evidence=match.reason,
                context=match.reason,
                examples=[ex.code for ex in context_examples],
                context_examples=context_examples,
                use_case_reasons=use_case_reasons(func, indices.functions.get(match.target)),
            )

    def _workflow_candidates(
        self, func: FunctionDescriptor, indices: RelationshipIndices,
    ) -> Iterator[RelationshipCandidate]:
        weights = self.config.relationship_weights
        for step in indices.workflows:
            if func.name not in step.functions:
                continue
            example = RelationshipExample(
                title=f"Workflow Step {step.step}",
                code=step.example,
                language=step.language,
                explanation=step.description,
                demonstrates="Functions used in sequence",
                source=ExampleSource.DOCUMENTATION,
            )
            for other in step.functions:
                if other == func.name:
                    continue
                yield RelationshipCandidate(
                    source_function=func.name,
                    target_function=other,
                    relationship_type=RelationshipType.COMPOSES_WITH,
                    strength=weights["workflow_strength"],
                    confidence=weights["workflow_confidence"],
                    factor=StrengthFactorKind.USAGE_PATTERN_SIMILARITY,
                    evidence="Functions appear in same workflow step",
                    context=f"Used together in workflow: {step.description}",
                    examples=[step.example],
                    context_examples=[example],
                    use_case_reasons=[f"Part of {step.description} workflow"],
                )

    def _prerequisite_candidates(
        self, func: FunctionDescriptor, indices: RelationshipIndices,
    ) -> Iterator[RelationshipCandidate]:
        weights = self.config.relationship_weights
        for chain in indices.chains:
            if chain.target != func.name:
                continue
            example = RelationshipExample(
                title=f"Prerequisite for {func.name}",
                code=chain.example,
                language="javascript",
                explanation=chain.reason,
                demonstrates="Function call order",
                source=ExampleSource.DOCUMENTATION,
            )
            for prerequisite in chain.prerequisites:
                yield RelationshipCandidate(
                    source_function=func.name,
                    target_function=prerequisite,
                    relationship_type=RelationshipType.PREREQUISITE_FOR,
                    strength=weights["prerequisite_strength"],
                    confidence=weights["prerequisite_confidence"],
                    factor=StrengthFactorKind.USAGE_PATTERN_SIMILARITY,
                    evidence="Function typically called before target function",
                    evidence_count=chain.occurrences.get(prerequisite, 1),
                    context=chain.reason,
                    examples=[chain.example],
                    context_examples=[example],
                    use_case_reasons=[chain.reason],
                )

    def _alternative_candidates(
        self, func: FunctionDescriptor, indices: RelationshipIndices,
    ) -> Iterator[RelationshipCandidate]:
        weights = self.config.relationship_weights
        for group in indices.groups:
            if not group.includes(func.name):
                continue
            for other in group.members:
                if other == func.name:
                    continue
                yield RelationshipCandidate(
                    source_function=func.name,
                    target_function=other,
                    relationship_type=RelationshipType.ALTERNATIVE_TO,
                    strength=weights["alternative_strength"],
                    confidence=weights["alternative_confidence"],
                    factor=StrengthFactorKind.SEMANTIC_SIMILARITY,
                    evidence="Functions serve similar purpose with different approaches",
                    context=f"Alternative for {group.purpose}",
                    use_case_reasons=[f"Alternative approach for {group.purpose}"],
                )

    # ── Validation ────────────────────────────────────────────────

    @staticmethod
    def _validate_functions(functions: Any) -> List[FunctionDescriptor]:
        if functions is None:
            raise InputFormatError("function collection is None")
        if isinstance(functions, (str, bytes, Mapping)):
            raise InputFormatError(
                f"expected a sequence of function descriptors, got {type(functions).__name__}"
            )
        try:
            items = list(functions)
        except TypeError as exc:
            raise InputFormatError(f"function collection is not iterable: {exc}") from exc

        validated: List[FunctionDescriptor] = []
        for position, item in enumerate(items):
            if item is None:
                raise InputFormatError(f"function descriptor at index {position} is None")
            if isinstance(item, Mapping):
                item = FunctionDescriptor.from_dict(item)
            if not isinstance(item, FunctionDescriptor):
                raise InputFormatError(
                    f"function descriptor at index {position} has unsupported type "
                    f"{type(item).__name__}"
                )
            if not isinstance(item.name, str) or not item.name:
                raise InputFormatError(f"function descriptor at index {position} has no name")
            if not isinstance(item.return_type, str):
                raise InputFormatError(f"function '{item.name}' has no return type")
            for param in item.parameters:
                if not isinstance(param.type, str):
                    raise InputFormatError(
                        f"parameter '{param.name}' of function '{item.name}' has no type"
                    )
            validated.append(item)
        return validated

    @staticmethod
    def _validate_corpus(corpus: Any, warnings: List[str]) -> List[CodeSnippet]:
        if corpus is None:
            warnings.append("No corpus supplied; only signature-based relationships can be inferred")
            return []
        if isinstance(corpus, (str, CodeSnippet, Mapping)):
            corpus = [corpus]

        snippets: List[CodeSnippet] = []
        skipped = 0
        for item in corpus:
            if isinstance(item, str):
                item = CodeSnippet(code=item)
            elif isinstance(item, Mapping):
                item = CodeSnippet.from_dict(item)
            if not isinstance(item, CodeSnippet) or not isinstance(item.code, str):
                skipped += 1
                continue
            snippets.append(item)

        if skipped:
            warnings.append(f"Skipped {skipped} corpus entries without code text")
        if not snippets:
            warnings.append("No corpus supplied; only signature-based relationships can be inferred")
        return snippets

    def _metadata(self, started: float, function_count: int, snippet_count: int) -> ResultMetadata:
        from relmap import __version__

        return ResultMetadata(
            processing_time_ms=(time.perf_counter() - started) * 1000,
            timestamp=now_iso(),
            version=__version__,
            function_count=function_count,
            snippet_count=snippet_count,
        )


def build_relationships(functions: Any, corpus: Any = (),
                        config: Optional[RelmapConfig] = None) -> AnalysisResult:
    """
    Infer relationships between *functions* from a snippet *corpus*.

    Returns an :class:`AnalysisResult` whose ``data`` holds one
    :class:`RelationshipMap` per input function, in input order.
    """
    return RelationshipBuilder(config).build(functions, corpus)
