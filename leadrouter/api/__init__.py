"""HTTP API for rules, leads and dispatch."""
