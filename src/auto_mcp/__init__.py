# Auto MCP
# Exposes FastAPI operations as MCP tools

from .integration import mount_auto_mcp
from .models.results import ActionResult
from .query import QueryOptions
from .serialization.query_options import query_options

__version__ = "0.1.0"

__all__ = ["ActionResult", "QueryOptions", "mount_auto_mcp", "query_options", "__version__"]


def main() -> None:
    """CLI entry point for the application."""
    import uvicorn

    from .config import get_config

    settings = get_config()
    uvicorn.run(
        "auto_mcp.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
