"""
LangGraph construction for the extraction retry loop.

States map onto graph nodes: ``attempt`` runs attempt k, ``succeeded`` and
``fallback`` are the two terminal states.
"""

from typing import Callable, Dict, Literal

from langgraph.graph import END, StateGraph

from sketchforge.orchestration.state import ExtractionState

NodeFn = Callable[[ExtractionState], Dict]


def route_after_attempt(state: ExtractionState) -> Literal["attempt", "succeeded", "fallback"]:
    """
    Route function for the attempt node's conditional edges.

    A non-empty element list ends the loop; otherwise the loop continues
    while attempts remain and degrades to the fallback state after that.
    """
    if state.get("elements"):
        return "succeeded"
    if state.get("attempt_index", 0) < state.get("max_attempts", 0):
        return "attempt"
    return "fallback"


def create_extraction_graph(attempt_node: NodeFn, succeeded_node: NodeFn, fallback_node: NodeFn):
    """
    Create and compile the extraction LangGraph.

    Args:
        attempt_node: Runs one attempt and records its outcome
        succeeded_node: Finalizes an accepted element list
        fallback_node: Produces the default element set

    Returns:
        Compiled LangGraph application
    """
    graph = StateGraph(ExtractionState)

    graph.add_node("attempt", attempt_node)
    graph.add_node("succeeded", succeeded_node)
    graph.add_node("fallback", fallback_node)

    graph.set_entry_point("attempt")

    graph.add_conditional_edges(
        "attempt",
        route_after_attempt,
        {
            "attempt": "attempt",
            "succeeded": "succeeded",
            "fallback": "fallback",
        }
    )

    graph.add_edge("succeeded", END)
    graph.add_edge("fallback", END)

    return graph.compile()
