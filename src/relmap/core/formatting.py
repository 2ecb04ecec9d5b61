"""
relmap Output Formatting

Console, JSON and compact renderings of relationship maps.
"""

import json
import shutil
from typing import List, Optional

from relmap.core.engine import AnalysisResult, RelationshipMap


class ResultFormatter:
    """Format relationship maps for different output modes."""

    # ── Console (human-friendly) ──────────────────────────────────

    @staticmethod
    def format_console(maps: List[RelationshipMap], elapsed_time: Optional[float] = None,
                       show_context: bool = True) -> str:
        """
        One block per function: ranked relationships with their scores,
        then workflow, prerequisite and alternative context.

        Args:
            maps: Relationship maps to render.
            elapsed_time: Optional build time in seconds for the header.
            show_context: Include the contextual info section.
        """
        if not maps:
            return "\n  No functions to relate.\n"

        width = min(shutil.get_terminal_size().columns, 78)
        thin = "─" * width

        total = sum(len(m.relationships) for m in maps)
        header = (
            f"  RELMAP — {len(maps)} function{'s' if len(maps) != 1 else ''}, "
            f"{total} relationship{'s' if total != 1 else ''}"
        )
        if elapsed_time is not None:
            timing_str = f"{elapsed_time:.4f}".replace(',', '.')
            header += f" in {timing_str} seconds"

        out: List[str] = [f"\n{thin}", header, thin]

        for m in maps:
            out.append("")
            out.append(f"  {m.function_name}  (score {m.relationship_score:.2f})")
            out.append(f"  {'─' * (width - 2)}")
            if not m.relationships:
                out.append("    (no relationships)")
            for rel in m.relationships:
                out.append(
                    f"    {rel.relationship_type.value:<22} {rel.function_name:<20} "
                    f"s={rel.strength:.2f} c={rel.confidence:.2f} n={rel.evidence_count}"
                )

            if not show_context:
                continue
            info = m.contextual_info
            if info.common_use_cases:
                out.append(f"    Use cases    : {', '.join(info.common_use_cases)}")
            for step in info.typical_workflows:
                out.append(f"    Workflow     : {step.description}")
            for chain in info.prerequisite_chains:
                out.append(f"    Prerequisites: {', '.join(chain.prerequisites)}")
            for group in info.alternative_groups:
                out.append(f"    Alternatives : {', '.join(group.members)}")

        out.append(f"\n{thin}")
        return "\n".join(out)

    # ── JSON ──────────────────────────────────────────────────────

    @staticmethod
    def format_json(result: AnalysisResult) -> str:
        """The full result (data or error, warnings, metadata) as JSON."""
        return json.dumps(result.to_dict(), indent=2, allow_nan=False)

    # ── Compact (one line per relationship) ───────────────────────

    @staticmethod
    def format_compact(maps: List[RelationshipMap]) -> str:
        """``source -[type]-> target  score`` lines, grep-friendly."""
        lines: List[str] = []
        for m in maps:
            for rel in m.relationships:
                lines.append(
                    f"{m.function_name} -[{rel.relationship_type.value}]-> "
                    f"{rel.function_name}  {rel.score:.3f}"
                )
        if not lines:
            return "No relationships found."
        return "\n".join(lines)
