"""
Home search agent.

This package contains the LangGraph tool-calling loop that turns a
natural-language home search into parameter extraction, geocoding and a
property search, plus the tool registry and state it runs on.
"""
