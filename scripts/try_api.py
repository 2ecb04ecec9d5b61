#!/usr/bin/env python3
"""
Manually try the relmap Python API on a small array-utility library or on
your own input document.

This script builds relationship maps, prints the console report, then
walks one map so you can see build(), find(), contextual_info and the
JSON rendering in action.

Usage:
  # From project root, using the built-in sample
  python scripts/try_api.py

  # Use your own {"functions": [...], "corpus": [...]} document
  python scripts/try_api.py inputs.json

  # Inspect one function in detail
  python scripts/try_api.py --function filter

Requirements:
  - relmap installed (pip install -e . from project root)
"""

import sys
from pathlib import Path

# Use src layout so "relmap" is importable when run from the repo
_src = Path(__file__).resolve().parent.parent / "src"
if _src.exists() and str(_src) not in sys.path:
    sys.path.insert(0, str(_src))


SAMPLE_FUNCTIONS = [
    {"name": "map", "parameters": [{"name": "array", "type": "T[]"},
                                   {"name": "callback", "type": "(item: T) => U"}],
     "returnType": "U[]", "category": "array-manipulation",
     "useCases": ["Data transformation", "Array processing"]},
    {"name": "filter", "parameters": [{"name": "array", "type": "T[]"},
                                      {"name": "predicate", "type": "(item: T) => boolean"}],
     "returnType": "T[]", "category": "array-manipulation",
     "useCases": ["Data filtering", "Array processing"]},
    {"name": "reduce", "parameters": [{"name": "array", "type": "T[]"},
                                      {"name": "callback", "type": "(acc: U, item: T) => U"},
                                      {"name": "initialValue", "type": "U", "optional": True}],
     "returnType": "U", "category": "array-manipulation", "complexity": "intermediate",
     "useCases": ["Data aggregation", "Array processing"]},
    {"name": "validateEmail", "parameters": [{"name": "email", "type": "string"}],
     "returnType": "boolean", "category": "validation",
     "useCases": ["Input validation", "Form validation"]},
]

SAMPLE_CORPUS = [
    {"title": "Array processing pipeline", "code": (
        "const doubled = map(numbers, x => x * 2);\n"
        "const evens = filter(doubled, x => x % 2 === 0);\n"
        "const sum = reduce(evens, (acc, x) => acc + x, 0);\n"
    )},
    {"source": "example-file", "origin": "examples/users.js", "code": (
        "const validUsers = filter(users, user => validateEmail(user.email));\n"
        "const userNames = map(validUsers, user => user.name);\n"
    )},
]


def main() -> None:
    import argparse
    from relmap import RelationshipEngine
    from relmap.core.formatting import ResultFormatter

    parser = argparse.ArgumentParser(
        description="Manually try the relmap API on a sample library or an input document.",
    )
    parser.add_argument("path", nargs="?", default=None, type=Path,
                        help="JSON input document (default: built-in sample)")
    parser.add_argument("--function", default="map",
                        help="Function to inspect in detail (default: map)")
    parser.add_argument("--word-boundary", action="store_true",
                        help="Match names only at identifier boundaries")
    args = parser.parse_args()

    engine = RelationshipEngine(word_boundary_matching=args.word_boundary)
    print(f"Health: {engine.health()}\n")

    if args.path is not None:
        if not args.path.is_file():
            print(f"Error: not a file: {args.path}")
            sys.exit(1)
        result = engine.build_from_file(args.path)
    else:
        result = engine.build(SAMPLE_FUNCTIONS, SAMPLE_CORPUS)

    if not result.success:
        print(f"Error: {result.error.message}")
        sys.exit(1)

    for warning in result.warnings:
        print(f"Warning: {warning}")
    print(ResultFormatter.format_console(result.data,
                                         elapsed_time=result.metadata.processing_time_ms / 1000))

    rel_map = next((m for m in result.data if m.function_name == args.function), None)
    if rel_map is None:
        print(f"\nNo function named {args.function!r}.")
        return

    print(f"\n--- {rel_map.function_name} in detail ---")
    for rel in rel_map.relationships:
        factors = ", ".join(f"{f.factor.value}={f.weight:.2f}" for f in rel.strength_factors)
        print(f"  {rel.relationship_type.value:<22} {rel.function_name:<16} [{factors}]")
        for reason in dict.fromkeys(rel.use_case_reasons):
            print(f"      - {reason}")

    info = rel_map.contextual_info
    for step in info.typical_workflows:
        print(f"\n  Workflow step {step.step}: {step.description}")
        print("    " + step.example.replace("\n", "\n    "))


if __name__ == "__main__":
    main()
