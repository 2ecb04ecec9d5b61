"""
Shared fixtures for the relmap test suite.
"""

import sys
from pathlib import Path

import pytest

# Ensure the src/ directory is on the import path so that
# relmap.core.config / relmap.core.engine / etc. can be imported.
SRC_ROOT = Path(__file__).resolve().parent.parent / "src"
sys.path.insert(0, str(SRC_ROOT))

from relmap.core.config import RelmapConfig  # noqa: E402
from relmap.core.engine import (  # noqa: E402
    CodeSnippet, FunctionDescriptor, Parameter, SnippetSource,
)


# =============================================================================
# Fixtures: an array-utility API
# =============================================================================

@pytest.fixture
def map_func() -> FunctionDescriptor:
    return FunctionDescriptor(
        name="map",
        parameters=(
            Parameter("array", "T[]", description="Input array"),
            Parameter("callback", "(item: T) => U", description="Transform function"),
        ),
        return_type="U[]",
        description="Transform array elements",
        category="array-manipulation",
        complexity="beginner",
        use_cases=("Data transformation", "Array processing"),
    )


@pytest.fixture
def filter_func() -> FunctionDescriptor:
    return FunctionDescriptor(
        name="filter",
        parameters=(
            Parameter("array", "T[]", description="Input array"),
            Parameter("predicate", "(item: T) => boolean", description="Filter function"),
        ),
        return_type="T[]",
        description="Filter array elements",
        category="array-manipulation",
        complexity="beginner",
        use_cases=("Data filtering", "Array processing"),
    )


@pytest.fixture
def reduce_func() -> FunctionDescriptor:
    return FunctionDescriptor(
        name="reduce",
        parameters=(
            Parameter("array", "T[]", description="Input array"),
            Parameter("callback", "(acc: U, item: T) => U", description="Reducer function"),
            Parameter("initialValue", "U", optional=True, description="Initial accumulator value"),
        ),
        return_type="U",
        description="Reduce array to single value",
        category="array-manipulation",
        complexity="intermediate",
        use_cases=("Data aggregation", "Array processing"),
    )


@pytest.fixture
def validate_email_func() -> FunctionDescriptor:
    return FunctionDescriptor(
        name="validateEmail",
        parameters=(Parameter("email", "string", description="Email to validate"),),
        return_type="boolean",
        description="Validate email format",
        category="validation",
        complexity="beginner",
        use_cases=("Input validation", "Form validation"),
    )


@pytest.fixture
def functions(map_func, filter_func, reduce_func, validate_email_func):
    return [map_func, filter_func, reduce_func, validate_email_func]


PIPELINE_BLOCK = """
const numbers = [1, 2, 3, 4, 5];
const doubled = map(numbers, x => x * 2);
const evens = filter(doubled, x => x % 2 === 0);
const sum = reduce(evens, (acc, x) => acc + x, 0);
"""

EMAIL_BLOCK = """
const email = 'user@example.com';
if (validateEmail(email)) {
  console.log('Valid email');
}
"""

NESTED_USAGE = """
const data = [1, 2, 3, 4, 5];
const result = reduce(
  filter(
    map(data, x => x * 2),
    x => x > 4
  ),
  (sum, x) => sum + x,
  0
);
"""

EXAMPLE_FILE = """
// Example showing map and filter together
const users = [
  { name: 'John', age: 25, email: 'john@example.com' },
  { name: 'Jane', age: 30, email: 'jane@example.com' }
];

const validUsers = filter(users, user => validateEmail(user.email));
const userNames = map(validUsers, user => user.name);
"""


@pytest.fixture
def corpus():
    """Documentation blocks, a usage example and an example file."""
    return [
        CodeSnippet(PIPELINE_BLOCK, title="Array processing pipeline"),
        CodeSnippet(EMAIL_BLOCK, title="Email validation example"),
        CodeSnippet(
            NESTED_USAGE,
            source=SnippetSource.USAGE_EXAMPLE,
            title="Data Processing Pipeline",
            description="Process data using map, filter, and reduce",
        ),
        CodeSnippet(
            EXAMPLE_FILE,
            source=SnippetSource.EXAMPLE_FILE,
            origin="examples/array-processing.js",
        ),
    ]


@pytest.fixture
def config() -> RelmapConfig:
    return RelmapConfig()


@pytest.fixture
def input_document(tmp_path, functions, corpus) -> Path:
    """A JSON input file holding the fixture functions and corpus."""
    import json

    path = tmp_path / "inputs.json"
    path.write_text(json.dumps({
        "functions": [f.to_dict() for f in functions],
        "corpus": [s.to_dict() for s in corpus],
    }), encoding="utf-8")
    return path
