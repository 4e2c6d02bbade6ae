"""
Prompt templates for conversations, document generation and summarization
"""

from smartdocs.prompts.base import PromptBuilder

__all__ = ["PromptBuilder"]
