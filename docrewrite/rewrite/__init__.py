"""Rewrite service clients and run orchestration."""

from docrewrite.rewrite.orchestrator import RewriteOrchestrator
from docrewrite.rewrite.service import FunctionRewriteService, LLMRewriteService, RewriteService

__all__ = [
    "FunctionRewriteService",
    "LLMRewriteService",
    "RewriteOrchestrator",
    "RewriteService",
]
