"""System prompt builder for the support agent.

The preamble is the only system-role entry of every completion request and is
followed by the conversation history.
"""
from __future__ import annotations


def build_system_prompt(*, store_name: str, store_knowledge: str) -> str:
    return f"You are a support agent for {store_name}. {store_knowledge}"
