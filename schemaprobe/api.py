"""HTTP service exposing request schema discovery.

Routes:
- POST /api/discover - run one discovery and return the schema
- GET /health - readiness probe
"""

import argparse
import logging
import os
from collections.abc import Callable
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import httpx
import uvicorn
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config import DEFAULT_CONFIG_PATH, load_config
from .discovery import DeepSeekReasoningEngine, ProbeTransport, ReasoningSetupError
from .discovery.reasoning import ReasoningEngine
from .logging_setup import setup_logging
from .runner import build_request, run_discovery

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "SCHEMAPROBE_CONFIG"


class DiscoverRequestBody(BaseModel):
    """Inbound discovery request."""

    model_config = ConfigDict(populate_by_name=True)

    url: str
    method: str = "POST"
    headers: dict[str, str] = Field(default_factory=dict)
    initial_body: dict[str, Any] | None = Field(default=None, alias="initialBody")
    max_iterations: int = Field(default=0, ge=0, alias="maxIterations")

    @field_validator("url")
    @classmethod
    def _absolute_http_url(cls, v: str) -> str:
        try:
            parsed = httpx.URL(v)
        except httpx.InvalidURL as e:
            raise ValueError(f"invalid url: {e}") from e
        if parsed.scheme not in ("http", "https") or not parsed.host:
            raise ValueError("url must be an absolute http(s) URL")
        return v


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load configuration and open the shared probe transport."""
    config = load_config(Path(os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH)))
    app.state.config = config
    app.state.transport = ProbeTransport.from_config(config.get("probe", {}))
    logger.info("Discovery service ready")
    try:
        yield
    finally:
        await app.state.transport.aclose()


app = FastAPI(title="schemaprobe", lifespan=lifespan)


def get_config(request: Request) -> dict[str, Any]:
    config = getattr(request.app.state, "config", None)
    if config is None:
        config = load_config(Path(os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_PATH)))
        request.app.state.config = config
    return config


def get_transport(request: Request) -> ProbeTransport:
    return request.app.state.transport


def get_reasoning_factory(
    config: dict[str, Any] = Depends(get_config),
) -> Callable[[], ReasoningEngine]:
    """Factory creating one reasoning engine per discovery run."""
    return lambda: DeepSeekReasoningEngine.from_config(config.get("reasoning", {}))


@app.get("/health")
def health():
    return {"status": "ready"}


@app.post("/api/discover")
async def discover(
    body: DiscoverRequestBody,
    config: dict[str, Any] = Depends(get_config),
    transport: ProbeTransport = Depends(get_transport),
    reasoning_factory: Callable[[], ReasoningEngine] = Depends(get_reasoning_factory),
):
    """Discover the request schema of the given endpoint.

    Returns the schema, or a 500 with the cause when no schema could be
    produced. Partial schemas are never returned.
    """
    request = build_request(
        url=body.url,
        method=body.method,
        headers=body.headers,
        initial_body=body.initial_body,
        max_iterations=body.max_iterations,
        config=config,
    )

    try:
        reasoning = reasoning_factory()
    except ReasoningSetupError as e:
        return JSONResponse(
            status_code=500,
            content={"error": f"Failed to initialize discovery agent: {e}"},
        )

    session = await run_discovery(request, config, transport, reasoning)
    if session.failure is not None or session.schema is None:
        return JSONResponse(status_code=500, content={"error": session.error})

    return session.schema.to_dict()


def main(argv: list[str] | None = None) -> int:
    """Serve the discovery API with uvicorn."""
    parser = argparse.ArgumentParser(description="Serve the schema discovery API")
    parser.add_argument("--host", default="0.0.0.0", help="Bind address")
    parser.add_argument("--port", type=int, default=8080, help="Port to run the server on")
    parser.add_argument(
        "--config",
        type=Path,
        default=DEFAULT_CONFIG_PATH,
        help="Path to discovery configuration",
    )
    args = parser.parse_args(argv)

    os.environ[CONFIG_ENV_VAR] = str(args.config)
    log_config = load_config(args.config).get("logging", {})
    setup_logging(log_config.get("level", "INFO"), log_config.get("directory", "logs"))

    logger.info("Starting server on %s:%d", args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port, log_config=None)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
