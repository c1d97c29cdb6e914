from langgraph.graph import StateGraph, END

from pipeline.nodes import RelayNodes
from pipeline.state import RelayState


def should_continue(state):
    """Router: on a recorded error, skip the remaining service calls."""
    if state.get("error"):
        return "respond"
    return "continue"


def build_detect_graph(settings):
    """upload -> (resize) -> detection service -> response."""
    nodes = RelayNodes(settings)
    workflow = StateGraph(RelayState)

    workflow.add_node("prepare_upload", nodes.prepare_upload)
    workflow.add_node("detect", nodes.detect)
    workflow.add_node("respond", nodes.respond_detection)

    workflow.set_entry_point("prepare_upload")

    workflow.add_conditional_edges(
        "prepare_upload",
        should_continue,
        {"continue": "detect", "respond": "respond"},
    )
    workflow.add_edge("detect", "respond")
    workflow.add_edge("respond", END)

    return workflow.compile()


def build_match_graph(settings):
    """upload -> region crop -> embedding -> similarity search -> response."""
    nodes = RelayNodes(settings)
    workflow = StateGraph(RelayState)

    workflow.add_node("extract_region", nodes.extract)
    workflow.add_node("embed", nodes.embed)
    workflow.add_node("search", nodes.search)
    workflow.add_node("respond", nodes.respond_matches)

    workflow.set_entry_point("extract_region")

    # Each service call depends on the previous one; stop at the first error
    workflow.add_conditional_edges(
        "extract_region",
        should_continue,
        {"continue": "embed", "respond": "respond"},
    )
    workflow.add_conditional_edges(
        "embed",
        should_continue,
        {"continue": "search", "respond": "respond"},
    )
    workflow.add_edge("search", "respond")
    workflow.add_edge("respond", END)

    return workflow.compile()
