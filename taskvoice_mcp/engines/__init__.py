"""Parsing engines: the LLM parser, its backends and the rule-based fallback."""

from taskvoice_mcp.engines.backends import (
    LLMBackend,
    build_backends,
    check_backend_status,
    gemini_backend,
    groq_backend,
    ollama_backend,
)
from taskvoice_mcp.engines.llm import LLMCommandParser, build_prompt, clean_llm_response, parse_llm_response
from taskvoice_mcp.engines.rules import (
    RULE_TIERS,
    TIER_ORDER,
    Rule,
    infer_command,
    parse_clause,
    parse_with_rules,
    split_clauses,
)

__all__ = [
    # Backends
    "LLMBackend",
    "build_backends",
    "check_backend_status",
    "ollama_backend",
    "groq_backend",
    "gemini_backend",
    # LLM parser
    "LLMCommandParser",
    "build_prompt",
    "clean_llm_response",
    "parse_llm_response",
    # Rule parser
    "Rule",
    "RULE_TIERS",
    "TIER_ORDER",
    "parse_with_rules",
    "parse_clause",
    "split_clauses",
    "infer_command",
]
