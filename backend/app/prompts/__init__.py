"""Prompt templates for LLM interactions.

Modules:
    plan: System prompt and per-period user prompts for plan generation
"""
