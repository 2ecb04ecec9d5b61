"""
relmap Pattern Extraction

Corpus-wide patterns mined once per run and shared by every function's
relationship assembly:

- workflow steps (functions appearing on the same line, in sequence)
- prerequisite chains (functions appearing shortly before a target)
- alternative groups (functions with interchangeable signatures)
"""

import logging
from dataclasses import replace
from typing import Dict, List, Sequence, Tuple

from relmap.core.config import RelmapConfig
from relmap.core.engine import (
    AlternativeGroup, AlternativeOption, Complexity, CorpusIndex,
    FunctionDescriptor, NameMatcher, PrerequisiteChain, WorkflowStep,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Workflow Extraction
# =============================================================================

def describe_step(functions: Sequence[str]) -> str:
    if len(functions) == 1:
        return f"Use {functions[0]}"
    return f"Apply {', '.join(functions)} in sequence"


class WorkflowExtractor:
    """
    Turns code lines into workflow steps.

    A line naming one or more functions becomes a step.  Only snippets
    producing more than one step count as workflows.
    """

    def __init__(self, matcher: NameMatcher):
        self.matcher = matcher

    def extract(self, corpus: CorpusIndex) -> List[WorkflowStep]:
        """Extract and consolidate steps across the whole corpus."""
        steps: List[WorkflowStep] = []
        for idx, snippet in enumerate(corpus.snippets):
            # A line can only name functions its snippet already names.
            candidates = corpus.names_in(idx)
            if not candidates:
                continue
            sequence = self.extract_from_code(snippet.code, candidates, snippet.language)
            if len(sequence) > 1:
                steps.extend(sequence)

        consolidated = consolidate_workflows(steps)
        logger.debug(f"Workflow steps: {len(steps)} extracted, {len(consolidated)} after consolidation")
        return consolidated

    def extract_from_code(self, code: str, names: Sequence[str],
                          language: str = "javascript") -> List[WorkflowStep]:
        steps: List[WorkflowStep] = []
        for line in code.splitlines():
            if not line.strip():
                continue
            found = [name for name in names if self.matcher.contains(line, name)]
            if not found:
                continue
            steps.append(WorkflowStep(
                step=len(steps) + 1,
                description=describe_step(found),
                functions=found,
                example=line.strip(),
                language=language,
            ))
        return steps


def consolidate_workflows(steps: Sequence[WorkflowStep]) -> List[WorkflowStep]:
    """
    Group steps by their function-name set.

    The first step of each group is kept (as a copy) and later steps'
    examples are appended to it as ``// Alternative:`` lines.  Input
    steps are not modified.
    """
    grouped: Dict[Tuple[str, ...], WorkflowStep] = {}
    for step in steps:
        key = tuple(sorted(set(step.functions)))
        existing = grouped.get(key)
        if existing is None:
            grouped[key] = replace(step, functions=list(step.functions))
        else:
            existing.example += f"\n// Alternative: {step.example}"
    return list(grouped.values())


# =============================================================================
# Prerequisite Chains
# =============================================================================

class PrerequisiteChainBuilder:
    """
    Finds functions that are called shortly before a target function.

    For each snippet naming the target, the first line containing the
    target is located and the ``prerequisite_window`` lines above it are
    scanned for other function names.
    """

    def __init__(self, matcher: NameMatcher, config: RelmapConfig):
        self.matcher = matcher
        self.config = config

    def build(self, corpus: CorpusIndex) -> List[PrerequisiteChain]:
        chains: List[PrerequisiteChain] = []
        for name in corpus.names:
            occurrences = self.count_prerequisites(name, corpus)
            if not occurrences:
                continue
            prerequisites = list(occurrences)
            chains.append(PrerequisiteChain(
                target=name,
                prerequisites=prerequisites,
                reason="; ".join(f"{p} is typically called before {name}" for p in prerequisites),
                example=self.example_for(name, prerequisites, corpus),
                occurrences=occurrences,
            ))
        logger.debug(f"Prerequisite chains: {len(chains)}")
        return chains

    def prerequisites_for(self, target: str, corpus: CorpusIndex) -> List[str]:
        """Other functions seen in the window above *target*, deduplicated, first-seen order."""
        return list(self.count_prerequisites(target, corpus))

    def count_prerequisites(self, target: str, corpus: CorpusIndex) -> Dict[str, int]:
        """
        Count every window line naming another function, per function.

        Keys keep first-seen order.  A prerequisite seen above the target
        in three snippets counts three times.
        """
        found: Dict[str, int] = {}
        window = self.config.prerequisite_window

        for idx in corpus.snippets_with(target):
            others = [n for n in corpus.names_in(idx) if n != target]
            if not others:
                continue
            lines = corpus.snippets[idx].code.splitlines()
            target_line = next(
                (i for i, line in enumerate(lines) if self.matcher.contains(line, target)),
                None,
            )
            if not target_line:
                # Absent, or on the first line with nothing above it.
                continue
            for line in lines[max(0, target_line - window):target_line]:
                for other in others:
                    if self.matcher.contains(line, other):
                        found[other] = found.get(other, 0) + 1
        return found

    def example_for(self, target: str, prerequisites: Sequence[str], corpus: CorpusIndex) -> str:
        limit = self.config.prerequisite_example_chars
        for idx in corpus.snippets_with(target):
            names = corpus.names_in(idx)
            if any(p in names for p in prerequisites):
                code = corpus.snippets[idx].code
                return code[:limit] + ("..." if len(code) > limit else "")
        return f"// Example showing {target} with prerequisites"


# =============================================================================
# Alternative Groups
# =============================================================================

def are_alternatives(func1: FunctionDescriptor, func2: FunctionDescriptor) -> bool:
    """Same category, identical return-type text, parameter counts within one."""
    return (
        func1.category == func2.category
        and func1.return_type == func2.return_type
        and abs(len(func1.parameters) - len(func2.parameters)) <= 1
    )


def build_option(func: FunctionDescriptor) -> AlternativeOption:
    pros: List[str] = []
    cons: List[str] = []

    if func.complexity is Complexity.BEGINNER:
        pros.append("Easy to use")
    if len(func.parameters) <= 2:
        pros.append("Simple parameter structure")
    if len(func.examples) > 2:
        pros.append("Well documented with examples")

    if func.complexity is Complexity.ADVANCED:
        cons.append("Complex to use")
    if len(func.parameters) > 4:
        cons.append("Many parameters to configure")

    if func.is_async:
        performance = "Asynchronous operation - consider performance implications"
    elif any("[]" in p.type for p in func.parameters):
        performance = "Performance depends on array size"
    else:
        performance = "Generally good performance for typical use cases"

    return AlternativeOption(
        function_name=func.name,
        pros=pros,
        cons=cons,
        best_for=list(func.use_cases),
        performance_notes=performance,
    )


class AlternativeGrouper:
    """Greedy, single-pass grouping of interchangeable functions."""

    def group(self, functions: Sequence[FunctionDescriptor]) -> List[AlternativeGroup]:
        groups: List[AlternativeGroup] = []
        grouped: set = set()

        for func in functions:
            if func.name in grouped:
                continue
            # Each name joins at most one group.
            seen = {func.name}
            members: List[FunctionDescriptor] = []
            for other in functions:
                if other.name in seen or other.name in grouped:
                    continue
                if are_alternatives(func, other):
                    members.append(other)
                    seen.add(other.name)
            if not members:
                continue
            group_members = [func] + members
            grouped.update(m.name for m in group_members)
            groups.append(AlternativeGroup(
                purpose=f"Functions for {func.category.value} operations",
                alternatives=[build_option(m) for m in group_members],
                recommendation=(
                    f"Use {func.name} for most common cases, "
                    "consider alternatives based on specific requirements"
                ),
            ))

        logger.debug(f"Alternative groups: {len(groups)}")
        return groups
