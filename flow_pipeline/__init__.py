"""Flow agent pipeline portal.

Sequences LLM-backed marketing agents (Research, KB Builder, Presentation,
Content Planner, QA) over immutable project artifacts and tracks each run
in a pollable job ledger.
"""

__version__ = "0.1.0"
