"""Scheduling assistant that answers calendar questions through LLM tool calls."""

__version__ = "0.1.0"
