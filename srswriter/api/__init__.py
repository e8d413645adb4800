"""
SRS Writer Prompt API - FastAPI preview surface for prompt assembly.

Endpoints:
    POST /api/prompts/assemble      - Assemble a specialist prompt
    POST /api/prompts/orchestrator  - Build the orchestrator planning prompt
    GET  /api/templates/validate    - Template consistency report
    GET  /api/templates/stats       - Template cache statistics
    POST /api/templates/reload      - Drop template caches
    GET  /api/specialists           - List specialists
    POST /api/results/format        - Preview a tool execution report
    GET  /api/health                - Health check
"""

from .server import PromptService, create_app, get_prompt_service

__all__ = ["create_app", "PromptService", "get_prompt_service"]
