"""Reasoning backend client."""

from .reasoning_client import ReasoningClient, extract_json_block

__all__ = ["ReasoningClient", "extract_json_block"]
