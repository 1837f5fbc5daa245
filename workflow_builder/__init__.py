"""Workflow builder: step execution contract and AI workflow-graph validation.

Usage:
    from workflow_builder.graph import validate_graph
    from workflow_builder.steps import run_action

    result = validate_graph(candidate_graph, existing_graph)
    step_result = await run_action("shopify/get-order", {"orderId": "1001", "integrationId": "shop"})
"""

__version__ = "0.1.0"
