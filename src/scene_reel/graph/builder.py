"""StateGraph definition — assembles the pipeline nodes and their dependencies."""

from __future__ import annotations

from langgraph.graph import END, START, StateGraph

from scene_reel.graph.state import PipelineState
from scene_reel.nodes.media_resolver import resolve_media
from scene_reel.nodes.scriptwriter import generate_script
from scene_reel.nodes.segment_renderer import render_segments
from scene_reel.nodes.stitcher import stitch_segments


def build_graph():
    """Build and compile the assembly pipeline graph.

    Media resolution and script generation have no data dependency and run as
    parallel branches. Rendering waits for both; stitching waits for every
    render attempt.

    Returns:
        Compiled StateGraph ready for invocation.
    """
    graph = StateGraph(PipelineState)

    graph.add_node("resolve_media", resolve_media)
    graph.add_node("generate_script", generate_script)
    graph.add_node("render_segments", render_segments)
    graph.add_node("stitch_segments", stitch_segments)

    # Parallel fan-out from the entry point
    graph.add_edge(START, "resolve_media")
    graph.add_edge(START, "generate_script")

    # Join: render only once both branches have finished
    graph.add_edge(["resolve_media", "generate_script"], "render_segments")

    graph.add_edge("render_segments", "stitch_segments")
    graph.add_edge("stitch_segments", END)

    return graph.compile()
