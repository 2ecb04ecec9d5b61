"""
relmap Client Facade

Single entry point for programmatic use of relmap.  Wraps input loading
and relationship building behind an instance-based API with optional
async support.

Usage::

    from relmap import RelationshipEngine

    # From environment variables
    engine = RelationshipEngine()

    # With explicit configuration
    from relmap.core.config import RelmapConfig
    engine = RelationshipEngine(config=RelmapConfig(word_boundary_matching=True))

    result = engine.build(functions, corpus)
    for rel_map in result.unwrap():
        print(rel_map.function_name, rel_map.relationship_score)

    # Async variant (for FastAPI / Django async views)
    result = await engine.abuild(functions, corpus)
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Dict

from relmap.core.builder import RelationshipBuilder
from relmap.core.config import RelmapConfig
from relmap.core.engine import AnalysisResult, load_inputs

logger = logging.getLogger(__name__)


class RelationshipEngine:
    """
    High-level relmap client.

    Each instance carries its own :class:`RelmapConfig`; runs share no
    state, so one engine can serve concurrent callers.

    Args:
        config: Explicit configuration object.  When *None*, a config
            is built from environment variables or keyword overrides.
        validate_on_init: If True, call :meth:`RelmapConfig.validate` in
            __init__ so invalid tunables surface immediately.
        **kwargs: Forwarded to :class:`RelmapConfig` when *config* is
            ``None`` (e.g. ``max_relationships=5``).
    """

    def __init__(
        self,
        config: RelmapConfig | None = None,
        *,
        validate_on_init: bool = False,
        **kwargs,
    ):
        if config is not None:
            self._config = config
        elif kwargs:
            # Build a config from env, then overlay keyword overrides
            base = RelmapConfig.from_env()
            merged = {
                f.name: kwargs.get(f.name, getattr(base, f.name))
                for f in base.__dataclass_fields__.values()
            }
            self._config = RelmapConfig(**merged)
        else:
            self._config = RelmapConfig.from_env()

        if validate_on_init:
            self._config.validate()

    # ── Configuration ─────────────────────────────────────────────

    @property
    def config(self) -> RelmapConfig:
        """The active configuration for this engine."""
        return self._config

    # ── Building ──────────────────────────────────────────────────

    def build(
        self,
        functions: Any,
        corpus: Any = (),
        *,
        show_progress: bool = False,
    ) -> AnalysisResult:
        """
        Infer relationships for *functions* from *corpus*.

        Args:
            functions: Sequence of :class:`FunctionDescriptor` (or dicts).
            corpus: Sequence of :class:`CodeSnippet` (or dicts / code strings).
            show_progress: Show a tqdm progress bar.

        Returns:
            :class:`AnalysisResult` with one map per function, or a
            failed result carrying a ``PROCESSING_ERROR``.
        """
        builder = RelationshipBuilder(self._config, show_progress=show_progress)
        return builder.build(functions, corpus)

    def build_from_file(self, path: str | Path, *, show_progress: bool = False) -> AnalysisResult:
        """
        Load a JSON input document (see :func:`load_inputs`) and build.

        Raises:
            InputFormatError: If the document cannot be parsed.
            OSError: If the file cannot be read.
        """
        functions, corpus = load_inputs(Path(path))
        return self.build(functions, corpus, show_progress=show_progress)

    # ── Async variants ────────────────────────────────────────────
    # These use asyncio.to_thread() to run the pure computation off the
    # event loop.

    async def abuild(self, functions: Any, corpus: Any = ()) -> AnalysisResult:
        """Async variant of :meth:`build`."""
        return await asyncio.to_thread(self.build, functions, corpus)

    async def abuild_from_file(self, path: str | Path) -> AnalysisResult:
        """Async variant of :meth:`build_from_file`. Raises same exceptions as sync."""
        return await asyncio.to_thread(self.build_from_file, path)

    # ── Health (for agents / status endpoints) ─────────────────────

    def health(self) -> Dict[str, object]:
        """Return a small status dict for readiness probes."""
        return {
            "version": __import__("relmap", fromlist=["__version__"]).__version__,
            "max_relationships": self._config.max_relationships,
            "word_boundary_matching": self._config.word_boundary_matching,
        }
