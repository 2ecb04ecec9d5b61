"""
Tests for relmap.core.engine — data model, name matching, lexical scoring,
corpus / co-occurrence / semantic indices, and input loading.
"""

import json

import pytest

from relmap.core.config import RelmapConfig
from relmap.core.engine import (
    AnalysisError, AnalysisResult, CodeSnippet, Complexity, CooccurrenceIndex,
    CorpusIndex, EnhancedRelationship, ErrorType, ExampleSource, FunctionCategory,
    FunctionDescriptor, NameMatcher, Parameter, RelationshipType, ResultMetadata,
    SEMANTIC_RELATIONSHIP_TYPES, SEMANTIC_STRENGTH_FACTORS, SemanticScorer,
    SemanticSignal, SnippetSource, StrengthFactorKind, flatten_corpus, load_inputs,
    name_similarity, normalize_type, proximity_weight, types_compatible,
)
from relmap.exceptions import InputFormatError, ProcessingError


def _func(name, return_type="any", params=(), category="utility", **kwargs):
    return FunctionDescriptor(
        name=name,
        parameters=tuple(Parameter(p_name, p_type) for p_name, p_type in params),
        return_type=return_type,
        category=category,
        **kwargs,
    )


# =============================================================================
# Data model
# =============================================================================

class TestFunctionDescriptor:

    def test_coerces_lists_and_enum_values(self):
        func = FunctionDescriptor(
            name="chunk",
            parameters=[Parameter("array", "T[]")],
            use_cases=["Batching"],
            category="array-manipulation",
            complexity="advanced",
        )
        assert isinstance(func.parameters, tuple)
        assert func.use_cases == ("Batching",)
        assert func.category is FunctionCategory.ARRAY_MANIPULATION
        assert func.complexity is Complexity.ADVANCED

    def test_invalid_category_raises(self):
        with pytest.raises(InputFormatError, match="category"):
            FunctionDescriptor(name="x", category="not-a-category")

    def test_from_dict_accepts_camel_case(self):
        func = FunctionDescriptor.from_dict({
            "name": "debounce",
            "parameters": [{"name": "fn", "type": "Function"}, {"name": "wait", "type": "number",
                                                               "optional": True}],
            "returnType": "Function",
            "category": "utility",
            "complexity": "intermediate",
            "commonUseCase": ["Rate limiting"],
            "isAsync": True,
            "workingExamples": [{"code": "debounce(save, 100)"}, "debounce(f)"],
        })
        assert func.return_type == "Function"
        assert func.parameters[1].optional is True
        assert func.use_cases == ("Rate limiting",)
        assert func.is_async is True
        assert func.examples == ("debounce(save, 100)", "debounce(f)")

    def test_from_dict_requires_name(self):
        with pytest.raises(InputFormatError, match="name"):
            FunctionDescriptor.from_dict({"returnType": "void"})

    def test_to_dict_uses_wire_values(self, map_func):
        data = map_func.to_dict()
        assert data["category"] == "array-manipulation"
        assert data["complexity"] == "beginner"
        assert data["parameters"][0] == {
            "name": "array", "type": "T[]", "optional": False, "description": "Input array",
        }

    def test_round_trip_through_dict(self, reduce_func):
        assert FunctionDescriptor.from_dict(reduce_func.to_dict()) == reduce_func


class TestCodeSnippet:

    def test_defaults(self):
        snippet = CodeSnippet("map(xs, f)")
        assert snippet.language == "javascript"
        assert snippet.source is SnippetSource.DOCUMENTATION_BLOCK

    def test_from_dict_example_file(self):
        snippet = CodeSnippet.from_dict({
            "content": "filter(xs, p)",
            "filePath": "examples/a.js",
            "source": "example-file",
        })
        assert snippet.code == "filter(xs, p)"
        assert snippet.origin == "examples/a.js"
        assert snippet.source is SnippetSource.EXAMPLE_FILE


class TestEnhancedRelationship:

    def test_values_are_clamped(self):
        rel = EnhancedRelationship("b", RelationshipType.EXTENDS, strength=1.4,
                                   confidence=-0.2, evidence_count=0)
        assert rel.strength == 1.0
        assert rel.confidence == 0.0
        assert rel.evidence_count == 1

    def test_merged_with_combines_without_mutation(self):
        a = EnhancedRelationship("b", RelationshipType.EXTENDS, 0.3, 0.9, 2, examples=["x"])
        b = EnhancedRelationship("b", RelationshipType.EXTENDS, 0.6, 0.4, 1, examples=["y"])
        merged = a.merged_with(b)
        assert (merged.strength, merged.confidence, merged.evidence_count) == (0.6, 0.9, 3)
        assert merged.examples == ["x", "y"]
        assert a.examples == ["x"]

    def test_to_dict_serialises_enums(self):
        rel = EnhancedRelationship("b", RelationshipType.COMPOSES_WITH, 0.7, 0.8)
        data = rel.to_dict()
        assert data["relationship_type"] == "composes-with"
        json.dumps(data)


class TestAnalysisResult:

    @pytest.fixture
    def metadata(self):
        return ResultMetadata(processing_time_ms=1.0, timestamp="2024-01-01T00:00:00",
                              version="1.0.0")

    def test_ok_unwrap(self, metadata):
        result = AnalysisResult.ok([], metadata)
        assert result.success is True
        assert result.unwrap() == []
        assert result.error is None

    def test_fail_unwrap_raises(self, metadata):
        error = AnalysisError(ErrorType.PROCESSING_ERROR, "Relationship building failed: boom")
        result = AnalysisResult.fail(error, metadata)
        assert result.data is None
        with pytest.raises(ProcessingError, match="boom"):
            result.unwrap()

    def test_to_dict_shape(self, metadata):
        error = AnalysisError(ErrorType.PROCESSING_ERROR, "x", suggestions=["a"])
        data = AnalysisResult.fail(error, metadata).to_dict()
        assert data["success"] is False
        assert data["error"]["type"] == "PROCESSING_ERROR"
        assert data["metadata"]["source"] == "relationship-builder"


# =============================================================================
# Vocabulary mapping tables
# =============================================================================

class TestSemanticTables:

    def test_every_signal_has_a_type_and_factor(self):
        assert set(SEMANTIC_RELATIONSHIP_TYPES) == set(SemanticSignal)
        assert set(SEMANTIC_STRENGTH_FACTORS) == set(SemanticSignal)

    @pytest.mark.parametrize("signal, rel_type, factor", [
        (SemanticSignal.PARAMETER_COMPATIBLE, RelationshipType.TRANSFORMS_OUTPUT_OF,
         StrengthFactorKind.PARAMETER_COMPATIBILITY),
        (SemanticSignal.RETURN_COMPATIBLE, RelationshipType.ALTERNATIVE_TO,
         StrengthFactorKind.RETURN_TYPE_COMPATIBILITY),
        (SemanticSignal.NAME_SIMILAR, RelationshipType.ALTERNATIVE_TO,
         StrengthFactorKind.SEMANTIC_SIMILARITY),
        (SemanticSignal.CATEGORY_SIMILAR, RelationshipType.COMMONLY_USED_WITH,
         StrengthFactorKind.SEMANTIC_SIMILARITY),
    ])
    def test_mapping(self, signal, rel_type, factor):
        assert SEMANTIC_RELATIONSHIP_TYPES[signal] is rel_type
        assert SEMANTIC_STRENGTH_FACTORS[signal] is factor


# =============================================================================
# Name matching & lexical scoring
# =============================================================================

class TestNameMatcher:

    def test_substring_mode_matches_inside_identifiers(self):
        matcher = NameMatcher()
        assert matcher.contains("mapValues(obj, f)", "map")
        assert matcher.find("x = mapValues(obj)", "map") == 4

    def test_word_boundary_mode(self):
        matcher = NameMatcher(word_boundary=True)
        assert not matcher.contains("mapValues(obj, f)", "map")
        assert not matcher.contains("_.$map(xs)", "map")
        assert matcher.contains("_.map(xs)", "map")
        assert matcher.find("mapValues(a); map(b)", "map") == 14

    def test_missing_name(self):
        assert NameMatcher().find("filter(xs)", "reduce") == -1
        assert NameMatcher(word_boundary=True).find("filter(xs)", "reduce") == -1

    def test_special_characters_are_escaped(self):
        matcher = NameMatcher(word_boundary=True)
        assert matcher.contains("call a.b(1)", "a.b")
        assert not matcher.contains("call axb(1)", "a.b")


class TestNameSimilarity:

    @pytest.mark.parametrize("a, b, expected", [
        ("map", "map", 1.0),
        ("map", "Map", 1.0),
        ("filter", "filterAll", 1 - 3 / 9),
        ("map", "mapValues", 1 - 6 / 9),
        ("abc", "xyz", 0.0),
        ("", "", 1.0),
    ])
    def test_values(self, a, b, expected):
        assert name_similarity(a, b) == pytest.approx(expected)


class TestTypesCompatible:

    @pytest.mark.parametrize("t1, t2, expected", [
        ("string", "string", True),
        ("string", " String ", True),
        ("T[]", "t []", True),
        ("T[]", "U[]", False),
        ("string[]", "string", False),
        ("Promise<string>", "Promise<number>", True),
        ("Promise<string>", "Observable<string>", False),
        ("Array<T>", "T[]", False),
        ("number", "boolean", False),
    ])
    def test_table(self, t1, t2, expected):
        assert types_compatible(t1, t2) is expected

    def test_normalize_type(self):
        assert normalize_type(" Record< string , T > ") == "record<string,t>"


# =============================================================================
# Corpus index
# =============================================================================

class TestCorpusIndex:

    @pytest.fixture
    def index(self, functions, corpus):
        return CorpusIndex(corpus, [f.name for f in functions], NameMatcher())

    def test_names_in_keep_function_order(self, index):
        assert index.names_in(0) == ("map", "filter", "reduce")
        assert index.names_in(1) == ("validateEmail",)
        assert index.names_in(3) == ("map", "filter", "validateEmail")

    def test_snippets_with(self, index):
        assert index.snippets_with("reduce") == (0, 2)
        assert index.snippets_with("unknown") == ()
        assert index.snippets_with_all("map", "validateEmail") == [3]

    def test_duplicate_names_collapse(self, corpus):
        index = CorpusIndex(corpus, ["map", "map"], NameMatcher())
        assert index.names == ("map",)

    def test_examples_for_per_source(self, index, config):
        examples = index.examples_for("map", "filter", config)
        assert [e.title for e in examples] == [
            "Array processing pipeline",
            "Data Processing Pipeline",
            "Example from examples/array-processing.js",
        ]
        assert examples[1].explanation == "Process data using map, filter, and reduce"
        assert [e.source for e in examples] == [
            ExampleSource.README, ExampleSource.README, ExampleSource.EXAMPLES,
        ]

    def test_examples_capped(self, functions, config):
        snippets = [CodeSnippet(f"map(filter(xs{i}, p), f)") for i in range(5)]
        index = CorpusIndex(snippets, ["map", "filter"], NameMatcher())
        assert len(index.examples_for("map", "filter", config)) == 3

    def test_example_file_code_truncated(self, config):
        code = "map(filter(xs, p), f);\n" + "x" * 600
        snippet = CodeSnippet(code, source=SnippetSource.EXAMPLE_FILE, origin="ex.js")
        index = CorpusIndex([snippet], ["map", "filter"], NameMatcher())
        example = index.examples_for("map", "filter", config)[0]
        assert example.code == code[:500] + "..."

    def test_untitled_block_gets_generated_title(self, config):
        index = CorpusIndex([CodeSnippet("map(filter(xs, p), f)")], ["map", "filter"],
                            NameMatcher())
        assert index.examples_for("map", "filter", config)[0].title == "map and filter example"


# =============================================================================
# Co-occurrence
# =============================================================================

class TestProximityWeight:

    def test_close_names(self, config):
        weight = proximity_weight("map(filter(data, p), f)", "map", "filter", NameMatcher(), config)
        assert weight == pytest.approx(2.96)

    def test_distant_names_floor_at_one(self, config):
        code = "map(xs)" + " " * 400 + "filter(ys)"
        assert proximity_weight(code, "map", "filter", NameMatcher(), config) == 1.0

    def test_missing_index_is_one(self, config):
        assert proximity_weight("map(xs)", "map", "filter", NameMatcher(), config) == 1.0

    def test_zero_distance_weighs_full(self, config):
        weight = proximity_weight("mapValues(obj, f)", "map", "mapValues", NameMatcher(), config)
        assert weight == 3.0



class TestCooccurrenceIndex:

    def test_single_line_pair(self, config):
        corpus = CorpusIndex([CodeSnippet("map(filter(data, p), f)")], ["map", "filter"],
                             NameMatcher())
        index = CooccurrenceIndex.build(corpus, config)
        assert index.weight("map", "filter") == pytest.approx(2.96)
        assert index.weight("filter", "map") == pytest.approx(2.96)
        assert index.strength("map", "filter") == pytest.approx(0.296)
        assert index.confidence("map", "filter") == pytest.approx(0.592)

    def test_accumulates_across_snippets(self, functions, corpus, config):
        index = CooccurrenceIndex.build(
            CorpusIndex(corpus, [f.name for f in functions], NameMatcher()), config,
        )
        assert index.neighbours("map")["filter"].snippets == 3
        assert index.neighbours("map")["reduce"].snippets == 2
        assert index.neighbours("map")["validateEmail"].snippets == 1
        assert list(index.neighbours("map")) == ["filter", "reduce", "validateEmail"]
        assert index.confidence("map", "filter") == 1.0

    def test_saturates_at_one(self, config):
        snippets = [CodeSnippet("map(filter(x))")] * 6
        index = CooccurrenceIndex.build(
            CorpusIndex(snippets, ["map", "filter"], NameMatcher()), config,
        )
        assert index.strength("map", "filter") == 1.0

    def test_unrelated_pair(self, config):
        corpus = CorpusIndex([CodeSnippet("map(xs)"), CodeSnippet("filter(xs)")],
                             ["map", "filter"], NameMatcher())
        index = CooccurrenceIndex.build(corpus, config)
        assert index.weight("map", "filter") == 0.0
        assert dict(index.neighbours("map")) == {}
        assert dict(index.neighbours("unknown")) == {}

    def test_adjacency_is_read_only(self, config):
        corpus = CorpusIndex([CodeSnippet("map(filter(x))")], ["map", "filter"], NameMatcher())
        index = CooccurrenceIndex.build(corpus, config)
        with pytest.raises(TypeError):
            index.neighbours("map")["reduce"] = None


# =============================================================================
# Semantic similarity
# =============================================================================

class TestSemanticScorer:

    def test_parameter_compatibility(self, filter_func, reduce_func):
        matches = SemanticScorer().score_pair(filter_func, reduce_func)
        signals = [m.signal for m in matches]
        assert SemanticSignal.PARAMETER_COMPATIBLE in signals
        match = matches[signals.index(SemanticSignal.PARAMETER_COMPATIBLE)]
        assert match.strength == 0.8
        assert match.relationship_type is RelationshipType.TRANSFORMS_OUTPUT_OF
        assert match.reason == "filter returns T[] which can be used as array parameter in reduce"

    def test_category_only(self, map_func, filter_func):
        matches = SemanticScorer().score_pair(map_func, filter_func)
        assert [m.signal for m in matches] == [SemanticSignal.CATEGORY_SIMILAR]
        assert matches[0].strength == 0.7
        assert matches[0].reason == "Both functions belong to array-manipulation category"

    def test_return_compatibility(self):
        a = _func("toUpper", "string", category="string-processing")
        b = _func("slugify", "String", category="transformation")
        matches = SemanticScorer().score_pair(a, b)
        assert [m.signal for m in matches] == [SemanticSignal.RETURN_COMPATIBLE]
        assert matches[0].reason == "Both functions return compatible types: string and String"

    def test_name_similarity_above_threshold(self):
        a = _func("filterAll", "void", category="filtering")
        b = _func("filterAny", "number", category="predicate")
        matches = SemanticScorer().score_pair(a, b)
        assert [m.signal for m in matches] == [SemanticSignal.NAME_SIMILAR]
        assert matches[0].strength == pytest.approx(1 - 2 / 9)
        assert matches[0].relationship_type is RelationshipType.ALTERNATIVE_TO

    def test_no_relationship(self, map_func, validate_email_func):
        assert SemanticScorer().score_pair(map_func, validate_email_func) == []

    def test_build_index_skips_self_and_duplicates(self, map_func, filter_func):
        index = SemanticScorer().build_index([map_func, filter_func, map_func])
        assert set(index) == {"map", "filter"}
        assert all(m.target != "map" for m in index["map"])

    def test_threshold_from_config(self):
        a = _func("filterAll", "void", category="filtering")
        b = _func("filterAny", "number", category="predicate")
        scorer = SemanticScorer(RelmapConfig(name_similarity_threshold=0.9))
        assert scorer.score_pair(a, b) == []


# =============================================================================
# Input loading
# =============================================================================

class TestLoadInputs:

    def test_functions_and_corpus(self, input_document):
        functions, corpus = load_inputs(input_document)
        assert [f.name for f in functions] == ["map", "filter", "reduce", "validateEmail"]
        assert len(corpus) == 4
        assert corpus[3].source is SnippetSource.EXAMPLE_FILE

    def test_extractor_shape(self, tmp_path):
        path = tmp_path / "analysis.json"
        path.write_text(json.dumps({
            "functions": [{"name": "map", "returnType": "U[]"}],
            "readme": {
                "codeBlocks": [{"code": "map(xs, f)", "context": "Mapping"}],
                "usageExamples": [{"title": "Usage", "code": "map(ys, g)"}],
            },
            "examples": [{"filePath": "examples/a.js", "content": "map(zs, h)"}],
        }), encoding="utf-8")
        functions, corpus = load_inputs(path)
        assert functions[0].return_type == "U[]"
        assert [s.source for s in corpus] == [
            SnippetSource.DOCUMENTATION_BLOCK, SnippetSource.USAGE_EXAMPLE,
            SnippetSource.EXAMPLE_FILE,
        ]
        assert corpus[0].title == "Mapping"
        assert corpus[2].origin == "examples/a.js"

    def test_bare_code_strings(self, tmp_path):
        path = tmp_path / "inputs.json"
        path.write_text(json.dumps({"functions": [], "corpus": ["map(xs)"]}), encoding="utf-8")
        _, corpus = load_inputs(path)
        assert corpus == [CodeSnippet("map(xs)")]

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(InputFormatError, match="not valid JSON"):
            load_inputs(path)

    def test_missing_functions(self, tmp_path):
        path = tmp_path / "empty.json"
        path.write_text(json.dumps({"corpus": []}), encoding="utf-8")
        with pytest.raises(InputFormatError, match="functions"):
            load_inputs(path)


class TestFlattenCorpus:

    def test_order_is_blocks_usage_files(self):
        snippets = flatten_corpus(
            [{"code": "a"}], [{"code": "b", "title": "B"}], [{"content": "c", "filePath": "c.js"}],
        )
        assert [s.code for s in snippets] == ["a", "b", "c"]
        assert snippets[1].title == "B"
