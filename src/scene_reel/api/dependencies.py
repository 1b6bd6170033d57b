"""FastAPI dependency injection — compiled graph instance."""

from __future__ import annotations

from functools import lru_cache

from scene_reel.graph.builder import build_graph


@lru_cache(maxsize=1)
def get_compiled_graph():
    """Return the compiled pipeline graph, shared across requests.

    The graph holds no per-request state; each invocation gets its own
    state and workspace.
    """
    return build_graph()
