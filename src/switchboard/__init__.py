"""Switchboard — event dispatch core for LLM-driven agents."""

__version__ = "1.0.0"
