"""
FastAPI preview server for prompt assembly.

Lets template authors see exactly what a specialist would receive for a
given context bag, check template consistency and list the discovered
specialists without running a chat turn.

Usage:
    # Run standalone
    python -m srswriter.api.server --port 5002

    # Or via factory
    from srswriter.api import create_app
    app = create_app(template_root="/path/to/rules")
    uvicorn.run(app, port=5002)

API Structure:
    /api/prompts/       - Assembly and orchestrator planning previews (routes/assembly.py)
    /api/templates/     - Consistency check and cache statistics (routes/assembly.py)
    /api/specialists    - Discovered specialists (routes/assembly.py)
    /api/results/       - Tool result report preview (routes/assembly.py)
    /api/health         - Health check
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from srswriter.config.assembly_config import load_settings
from srswriter.config.specialist_registry import TemplateSpecialistRegistry
from srswriter.context.providers import StaticToolSchemaProvider
from srswriter.prompts.engine import TemplateAssemblyEngine
from srswriter.prompts.orchestrator import OrchestratorPromptBuilder
from srswriter.prompts.store import TemplateStore
from srswriter.prompts.types import PROMPT_LAYOUT_VERSION

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


# =============================================================================
# Pydantic Models
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    layout_version: str
    master_template: bool
    search_dirs: List[str]


# =============================================================================
# Prompt Service
# =============================================================================


class PromptService:
    """Owns the store, registry, engine and orchestrator builder for the API.

    Attributes:
        store: Template store shared by everything below.
        registry: Specialist registry scanned from the store.
        engine: Assembly engine wired to the registry.
        orchestrator: Planning prompt builder.
    """

    def __init__(
        self,
        template_root: Optional[str] = None,
        search_dirs: Optional[Sequence[Path]] = None,
        tool_schema: Optional[str] = None,
    ):
        settings = load_settings()
        self.store = TemplateStore(template_root=template_root, settings=settings, search_dirs=search_dirs)
        self.registry = TemplateSpecialistRegistry(self.store)
        tool_schema_provider = StaticToolSchemaProvider(default=tool_schema) if tool_schema else None
        self.engine = TemplateAssemblyEngine(
            store=self.store,
            registry=self.registry,
            tool_schema_provider=tool_schema_provider,
            settings=settings,
        )
        self.orchestrator = OrchestratorPromptBuilder(self.store, tool_schema_provider)

    def reload(self) -> None:
        """Drop template and registry caches."""
        self.engine.clear_cache()


_prompt_service: Optional[PromptService] = None


def get_prompt_service() -> PromptService:
    """Get the global PromptService instance."""
    global _prompt_service
    if _prompt_service is None:
        _prompt_service = PromptService()
    return _prompt_service


# =============================================================================
# FastAPI Application Factory
# =============================================================================


def create_app(
    template_root: Optional[str] = None,
    search_dirs: Optional[Sequence[Path]] = None,
    tool_schema: Optional[str] = None,
    enable_cors: bool = True,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        template_root: Template directory searched before the packaged rules.
        search_dirs: Exact template directories (replaces the default layout).
        tool_schema: Tool schema text returned for every caller category.
        enable_cors: Whether to enable CORS middleware.

    Returns:
        Configured FastAPI application.
    """
    global _prompt_service
    _prompt_service = PromptService(template_root, search_dirs, tool_schema)

    app = FastAPI(
        title="SRS Writer Prompt API",
        description="Preview assembled specialist prompts and check the template tree.",
        version="1.0.0",
    )

    if enable_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["*"],
        )

    from .routes import assembly_router

    app.include_router(assembly_router, prefix="/api")

    # -------------------------------------------------------------------------
    # Health Check
    # -------------------------------------------------------------------------

    @app.get("/api/health", response_model=HealthResponse)
    async def health_check():
        """Health check endpoint.

        The server is healthy even without a master template; `master_template`
        reports whether assembly requests can succeed.
        """
        service = get_prompt_service()
        master_found = service.store.resolve(service.engine.settings.master_template) is not None
        if not master_found:
            logger.warning("Health check: master template not found in %s", service.store.search_dirs)
        return HealthResponse(
            status="ok",
            version=app.version,
            layout_version=PROMPT_LAYOUT_VERSION,
            master_template=master_found,
            search_dirs=[str(d) for d in service.store.search_dirs],
        )

    logger.info("Prompt API ready (template dirs: %s)", _prompt_service.store.search_dirs)
    return app


# =============================================================================
# Main Entry Point
# =============================================================================


def main():
    """Run the API server."""
    import argparse

    import uvicorn

    parser = argparse.ArgumentParser(description="SRS Writer Prompt API Server")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=5002, help="Port to bind to")
    parser.add_argument("--template-root", default=None, help="Template directory searched first")
    parser.add_argument("--no-cors", action="store_true", help="Disable CORS")
    args = parser.parse_args()

    app = create_app(template_root=args.template_root, enable_cors=not args.no_cors)

    print(f"Starting prompt API server at http://{args.host}:{args.port}")
    print("  POST   /api/prompts/assemble        - Assemble a specialist prompt")
    print("  POST   /api/prompts/orchestrator    - Build an orchestrator planning prompt")
    print("  GET    /api/templates/validate      - Template consistency report")
    print("  GET    /api/templates/stats         - Template cache statistics")
    print("  POST   /api/templates/reload        - Drop template caches")
    print("  GET    /api/specialists             - List specialists")
    print("  POST   /api/results/format          - Preview a tool execution report")
    print("  GET    /api/health                  - Health check")

    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
