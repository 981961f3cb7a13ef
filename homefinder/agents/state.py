"""
Home search agent state definitions.

HomeSearchState is the single state dict that flows through the LangGraph
pipeline for one search. It carries the transcript, the running parameter
map, the invocation log and the resolved results. Nothing in it outlives the
run that created it.
"""

import json
from typing import Annotated, Any, Literal, TypedDict

from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage
from langgraph.graph import add_messages
from pydantic import BaseModel, Field, field_serializer

from homefinder import serialization
from homefinder.agents.prompts import build_system_prompt
from homefinder.models.home import HomeRecord
from homefinder.models.parameters import ParameterMap


class ToolInvocation(BaseModel):
    """One entry of the invocation log: a dispatched tool and its outcome."""

    tool: str = Field(description="Registered tool name")
    arguments: dict[str, Any] = Field(
        default_factory=dict,
        description="Key arguments; for search, the criteria actually sent",
    )
    status: Literal["ok", "error"] = Field(description="Outcome of the dispatch")
    detail: str = Field(default="", description="Error message or short result summary")

    @field_serializer("arguments", when_used="json")
    def _arguments_as_json(self, arguments: dict[str, Any]) -> dict[str, Any]:
        return json.loads(serialization.dumps(arguments))


class HomeSearchState(TypedDict):
    """
    Full state for the home search LangGraph pipeline.

    Flows through: agent ↔ tools → finalize
    """

    # Conversation transcript (accumulated via add_messages reducer)
    messages: Annotated[list[BaseMessage], add_messages]

    # Original user query
    query: str

    # Running parameter map, merged from every tool argument and result
    parameters: ParameterMap

    # Append-only log of tool dispatches for this run
    tool_invocations: list[ToolInvocation]

    # Records from the latest search dispatch (None until a search runs)
    homes: list[HomeRecord] | None

    # Final model text
    answer: str

    # Model calls made so far
    turns: int


def create_initial_state(query: str) -> HomeSearchState:
    """Seed a run: system instruction, user query, empty accumulators."""
    return HomeSearchState(
        messages=[
            SystemMessage(content=build_system_prompt()),
            HumanMessage(content=query),
        ],
        query=query,
        parameters=ParameterMap(),
        tool_invocations=[],
        homes=None,
        answer="",
        turns=0,
    )
