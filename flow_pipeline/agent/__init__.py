"""Agents: payload shapes, generation client, invokers and the stage orchestrator."""
