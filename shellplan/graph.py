from __future__ import annotations

from langgraph.graph import StateGraph, END

from .nodes import PlanNodes, route, route_confirmation
from .state import State


def build_graph(nodes: PlanNodes):
    """validate -> policy_gate -> confirmation_gate -> run_sequence, any gate may end early."""
    g = StateGraph(State)
    g.add_node("validate", nodes.validate)
    g.add_node("policy_gate", nodes.policy_gate)
    g.add_node("confirmation_gate", nodes.confirmation_gate)
    g.add_node("run_sequence", nodes.run_sequence)

    g.set_entry_point("validate")
    g.add_conditional_edges("validate", route, {"next": "policy_gate", "end": END})
    # dry-run ends here, before anyone is asked anything
    g.add_conditional_edges("policy_gate", route, {"next": "confirmation_gate", "end": END})
    g.add_conditional_edges("confirmation_gate", route_confirmation, {"next": "run_sequence", "end": END})
    g.add_edge("run_sequence", END)

    return g.compile()
