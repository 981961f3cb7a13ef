"""
Home search API endpoints.

Endpoints:
- POST /api/v1/search        - Answer a natural-language home search
- GET  /api/v1/search/health - Report whether the search agent is ready
"""

from typing import Any

import structlog
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, field_validator

from homefinder import serialization
from homefinder.agents.errors import OrchestrationError
from homefinder.agents.orchestrator import HomeSearchAgent
from homefinder.agents.state import ToolInvocation
from homefinder.models.home import HomeRecord

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/search", tags=["search"])


class SearchRequest(BaseModel):
    """Request body for a home search."""

    query: str = Field(description="Natural-language home search, e.g. '3 bedroom homes near Orlando, FL'")

    @field_validator("query")
    @classmethod
    def _query_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("query must not be blank")
        return value.strip()


class SearchResponse(BaseModel):
    """Homes found for the query and the tools dispatched to find them."""

    homes: list[HomeRecord]
    tool_invocations: list[ToolInvocation]


class DecimalJSONResponse(JSONResponse):
    """JSON response that writes Decimal values with all their digits."""

    def render(self, content: Any) -> bytes:
        return serialization.dumps(content).encode("utf-8")


def _get_agent(request: Request) -> HomeSearchAgent:
    agent = getattr(request.app.state, "agent", None)
    if agent is None:
        raise HTTPException(status_code=503, detail="Home search agent is not configured")
    return agent


@router.post("", response_model=SearchResponse, response_class=DecimalJSONResponse)
async def search_homes(body: SearchRequest, request: Request) -> DecimalJSONResponse:
    """
    Run the tool-calling home search loop for one query.

    The response is rendered by DecimalJSONResponse from the python-mode
    dump, so prices and coordinates keep the digits the backend sent.

    Example usage with curl:
    ```
    curl -X POST http://localhost:8000/api/v1/search \
      -H "Content-Type: application/json" \
      -d '{"query": "3 bedroom homes near Orlando, FL under $500,000"}'
    ```
    """
    structlog.contextvars.bind_contextvars(query=body.query)
    agent = _get_agent(request)

    try:
        homes, tool_invocations = await agent.run(body.query)
    except OrchestrationError as e:
        logger.error(
            "home_search_failed",
            error_type=type(e).__name__,
            error=str(e),
            tool_invocations=len(e.tool_invocations),
        )
        return DecimalJSONResponse(
            status_code=502,
            content={
                "detail": {
                    "code": type(e).__name__,
                    "message": str(e),
                    "tool_invocations": [inv.model_dump() for inv in e.tool_invocations],
                }
            },
        )

    logger.info("home_search_response", homes=len(homes), tool_invocations=len(tool_invocations))
    response = SearchResponse(homes=homes, tool_invocations=tool_invocations)
    return DecimalJSONResponse(content=response.model_dump(by_alias=True))


@router.get("/health")
async def search_health(request: Request) -> dict:
    """Report whether the agent and its backends were configured at startup."""
    return {
        "agent_ready": getattr(request.app.state, "agent", None) is not None,
        "geocoding_configured": bool(getattr(request.app.state, "geocoding_configured", False)),
        "search_configured": bool(getattr(request.app.state, "search_configured", False)),
    }
