"""FastAPI application: protocol endpoint and health check.

Endpoints:

  POST   /mcp      Submit a protocol message (session created if absent)
  GET    /mcp      Open/resume the session's event stream
  DELETE /mcp      Tear a session down
  GET    /health   Liveness check

Wiring: Settings → SalesforceConnector → ToolRegistry → protocol server →
SessionRegistry → SessionEndpoint.
"""

from __future__ import annotations

from dotenv import load_dotenv
load_dotenv()

import logging
from contextlib import asynccontextmanager

# Configure root logger early so all app loggers (gateway.*, crm_scheduling.*)
# have a handler when run via `uvicorn crm_scheduling.app:app`.
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(name)-28s %(levelname)-7s %(message)s",
)

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from gateway.protocol import SERVER_NAME, build_protocol_server
from gateway.registry import SessionRegistry
from gateway.server import SessionEndpoint

from crm_scheduling import __version__
from crm_scheduling.config import Settings, settings as default_settings
from crm_scheduling.records.base import Connector
from crm_scheduling.records.salesforce import SalesforceConnector
from crm_scheduling.tools.registry import ToolRegistry, build_default_registry

log = logging.getLogger("crm_scheduling.app")


def create_app(
    settings: Settings | None = None,
    connector: Connector | None = None,
    tools: ToolRegistry | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = settings or default_settings
    logging.getLogger().setLevel(settings.log_level.upper())

    for warning in settings.validate_startup():
        log.warning(warning)

    if tools is None:
        connector = connector or SalesforceConnector.from_settings(settings)
        tools = build_default_registry(connector, settings)

    server = build_protocol_server(tools, name=SERVER_NAME, version=__version__)
    sessions = SessionRegistry(
        server,
        idle_timeout=settings.session_idle_timeout_seconds,
        replay_size=settings.session_replay_size,
        json_response=settings.mcp_json_response,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        log.info("Serving %d tools on /mcp", len(tools))
        async with sessions.run():
            yield

    app = FastAPI(
        title="CRM Scheduling Gateway",
        description="CRM contact, lead and appointment tools over a session protocol",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.sessions = sessions
    app.state.tools = tools

    # ── Health check ───────────────────────────────────────────

    @app.get("/health")
    async def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.add_route("/mcp", SessionEndpoint(sessions), methods=["GET", "POST", "DELETE"])
    return app


def main() -> None:
    import uvicorn

    log_config = uvicorn.config.LOGGING_CONFIG
    log_config["formatters"]["default"]["fmt"] = (
        "%(asctime)s %(name)-12s %(levelname)-8s %(message)s"
    )

    log.info("CRM scheduling server on http://%s:%d/mcp", default_settings.host, default_settings.port)
    uvicorn.run(
        "crm_scheduling.app:app",
        host=default_settings.host,
        port=default_settings.port,
        reload=default_settings.debug,
        log_config=log_config,
    )


# ── Module-level app instance for uvicorn ──────────────────────

app = create_app()


if __name__ == "__main__":
    main()
