"""
Home search LangGraph pipeline.

Graph topology:
    START → agent ⟷ tools
            agent → finalize → END

Nodes:
    agent    — one model turn over the full transcript, tools bound (tool_choice=auto)
    tools    — dispatch every requested tool call in order, merging arguments
               and results into the run's ParameterMap
    finalize — resolve the home records and the final answer

Routing:
    agent → tools     (if tool_calls present)
    agent → finalize  (if final response)
    tools → agent

The loop has no structural end; the model decides when to stop calling tools.
agent_node enforces max_turns and raises MaxTurnsExceededError past it.
"""

import re
from typing import Any

import structlog
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, ToolMessage
from langchain_core.runnables import Runnable
from langgraph.graph import END, StateGraph
from pydantic import ValidationError

from homefinder import serialization
from homefinder.agents.errors import (
    MalformedToolCallError,
    MaxTurnsExceededError,
    OrchestrationError,
    UnknownToolError,
)
from homefinder.agents.state import HomeSearchState, ToolInvocation, create_initial_state
from homefinder.agents.tools import TOOL_SCHEMAS, HomeSearchToolbox, ToolName
from homefinder.config import Settings
from homefinder.constants import HOME_TAG
from homefinder.models.home import HomeRecord
from homefinder.models.parameters import ParameterMap

logger = structlog.get_logger(__name__)

_HOME_BLOCK = re.compile(rf"<{HOME_TAG}>(.*?)</{HOME_TAG}>", re.DOTALL)


# ---------------------------------------------------------------------------
# Node: agent
# ---------------------------------------------------------------------------


async def agent_node(state: HomeSearchState, *, llm: Runnable, max_turns: int) -> dict:
    """
    Model turn. The model either requests tools or writes the final answer.

    Raises:
        MaxTurnsExceededError: This would be model call number max_turns + 1.
        MalformedToolCallError: The model produced tool arguments that are not
            a JSON object (reported by LangChain as invalid_tool_calls).
    """
    turns = state.get("turns", 0) + 1
    if turns > max_turns:
        logger.error("max_turns_exceeded", max_turns=max_turns)
        raise MaxTurnsExceededError(
            f"Model still requesting tools after {max_turns} turns.",
            state.get("tool_invocations"),
        )

    response = await llm.ainvoke(state["messages"])

    invalid_calls = getattr(response, "invalid_tool_calls", None) or []
    if invalid_calls:
        bad = invalid_calls[0]
        logger.error("malformed_tool_call", tool=bad.get("name"), error=bad.get("error"))
        raise MalformedToolCallError(
            f"Malformed arguments for tool '{bad.get('name')}': {bad.get('args')}",
            state.get("tool_invocations"),
        )

    tool_calls = getattr(response, "tool_calls", None) or []
    logger.info("model_turn", turn=turns, tool_calls=[tc["name"] for tc in tool_calls])

    return {"messages": [response], "turns": turns}


# ---------------------------------------------------------------------------
# Node: tools
# ---------------------------------------------------------------------------


async def tools_node(state: HomeSearchState, *, toolbox: HomeSearchToolbox) -> dict:
    """
    Dispatch the tool calls of the last model turn, one at a time.

    Calls run sequentially in model order because a later call may depend on
    parameters merged by an earlier one (search needs the geocode result).
    Each call gets exactly one ToolMessage answering its id.
    """
    last_message = state["messages"][-1]
    parameters = ParameterMap(state["parameters"])
    invocations = list(state.get("tool_invocations") or [])
    homes = state.get("homes")
    tool_messages: list[ToolMessage] = []
    raw_arguments = _raw_tool_arguments(last_message)

    for call in last_message.tool_calls:
        name = call["name"]
        args = raw_arguments.get(call.get("id"), call.get("args"))
        if not isinstance(args, dict):
            raise MalformedToolCallError(
                f"Arguments for tool '{name}' are not a JSON object.", invocations
            )

        logger.info("tool_call_started", tool=name, args=serialization.dumps(args))
        parameters.merge(args)

        handler = toolbox.resolve(name)
        if handler is None:
            invocations.append(
                ToolInvocation(tool=name, arguments=args, status="error", detail="unknown tool")
            )
            logger.error("unknown_tool_requested", tool=name)
            raise UnknownToolError(f"Unknown tool: {name}", invocations)

        try:
            result = await handler(args, parameters)
        except OrchestrationError as e:
            invocations.append(
                ToolInvocation(tool=name, arguments=args, status="error", detail=str(e))
            )
            e.tool_invocations = list(invocations)
            logger.error("tool_call_aborted", tool=name, error=str(e))
            raise

        invocations.append(result.invocation)
        _merge_tool_result(parameters, result.content)
        if name == ToolName.SEARCH.value:
            # The latest search decides the result; a failed one leaves no homes
            homes = result.homes if result.homes is not None else []

        tool_messages.append(
            ToolMessage(content=result.content, tool_call_id=call.get("id") or "", name=name)
        )
        logger.info("tool_call_completed", tool=name, status=result.invocation.status)

    return {
        "messages": tool_messages,
        "parameters": parameters,
        "tool_invocations": invocations,
        "homes": homes,
    }


def _raw_tool_arguments(message: BaseMessage) -> dict[str, Any]:
    """
    Re-parse each tool call's raw argument text with Decimal numbers.

    LangChain's parsed `tool_calls[i]["args"]` hold floats, which would round
    high-precision coordinates before they reach the parameter map. The
    provider's raw JSON text is kept in additional_kwargs; calls missing from
    it fall back to the parsed args.
    """
    parsed: dict[str, Any] = {}
    for raw_call in message.additional_kwargs.get("tool_calls") or []:
        function = raw_call.get("function") or {}
        text = function.get("arguments")
        if not raw_call.get("id") or not isinstance(text, str):
            continue
        try:
            parsed[raw_call["id"]] = serialization.loads(text) if text.strip() else {}
        except serialization.JSONDecodeError:
            logger.debug("raw_tool_arguments_unparsed", tool_call_id=raw_call["id"])
    return parsed


def _merge_tool_result(parameters: ParameterMap, content: str) -> None:
    """Merge a JSON-object tool result into the parameter map (arrays are skipped)."""
    try:
        document = serialization.loads(content)
    except ValueError:
        logger.debug("tool_result_not_json", content_preview=content[:200])
        return
    if isinstance(document, dict):
        parameters.merge(document)


# ---------------------------------------------------------------------------
# Node: finalize
# ---------------------------------------------------------------------------


def finalize_node(state: HomeSearchState) -> dict:
    """
    Resolve the run's output.

    Records from the latest search dispatch win; they are the backend's data
    rather than the model's retelling of it. A failed latest search yields no
    homes. A run that never searched falls back to the <home> blocks of the
    final answer.
    """
    answer = _message_text(state["messages"][-1]) if state.get("messages") else ""
    homes = state.get("homes")
    if homes is None:
        homes = parse_answer_homes(answer)

    logger.info("home_search_finished", turns=state.get("turns", 0), homes=len(homes))
    return {"answer": answer, "homes": homes}


def _message_text(message: BaseMessage) -> str:
    content = message.content
    if isinstance(content, str):
        return content
    parts = []
    for block in content:
        if isinstance(block, str):
            parts.append(block)
        elif isinstance(block, dict) and block.get("type") == "text":
            parts.append(block.get("text", ""))
    return "".join(parts)


def parse_answer_homes(answer: str) -> list[HomeRecord]:
    """
    Parse the homes written in the model's final answer.

    The system prompt asks for one JSON object per home wrapped in <home></home>.
    A bare JSON array of homes is accepted too. Invalid entries are logged and
    skipped.
    """
    blocks: list[Any] = []
    raw_blocks = _HOME_BLOCK.findall(answer)
    if raw_blocks:
        for raw in raw_blocks:
            try:
                blocks.append(serialization.loads(raw.strip()))
            except ValueError as e:
                logger.warning("answer_home_invalid", error=str(e), block=raw[:200])
    elif answer.strip().startswith("["):
        try:
            blocks = serialization.loads(answer)
        except ValueError as e:
            logger.warning("answer_home_invalid", error=str(e), block=answer[:200])

    homes: list[HomeRecord] = []
    for block in blocks:
        if not isinstance(block, dict):
            logger.warning("answer_home_invalid", error="not a JSON object")
            continue
        try:
            homes.append(HomeRecord.from_answer(block))
        except ValidationError as e:
            logger.warning("answer_home_invalid", error=str(e))
    return homes


# ---------------------------------------------------------------------------
# Routing
# ---------------------------------------------------------------------------


def should_continue(state: HomeSearchState) -> str:
    """Route from agent: go to tools if tool_calls, else finalize."""
    last_message = state["messages"][-1] if state.get("messages") else None
    if last_message is None:
        return "finalize"
    if isinstance(last_message, AIMessage) and last_message.tool_calls:
        return "tools"
    return "finalize"


# ---------------------------------------------------------------------------
# Graph construction
# ---------------------------------------------------------------------------


def build_home_search_graph(
    settings: Settings, llm: BaseChatModel, toolbox: HomeSearchToolbox
):
    """
    Build and compile the home search LangGraph.

    The graph is compiled once at startup and shared by all requests; each
    run gets its own state from create_initial_state().

    Args:
        settings: Application settings (turn ceiling).
        llm:      Chat model with tool-calling support.
        toolbox:  Tool handlers backed by the geocoder and search services.

    Returns:
        Compiled LangGraph ready for async invocation.
    """
    max_turns = settings.orchestrator.max_turns
    llm_with_tools = llm.bind_tools(TOOL_SCHEMAS, tool_choice="auto")

    graph = StateGraph(HomeSearchState)

    async def agent_with_model(state: HomeSearchState) -> dict:
        return await agent_node(state, llm=llm_with_tools, max_turns=max_turns)

    async def tools_with_toolbox(state: HomeSearchState) -> dict:
        return await tools_node(state, toolbox=toolbox)

    graph.add_node("agent", agent_with_model)
    graph.add_node("tools", tools_with_toolbox)
    graph.add_node("finalize", finalize_node)

    graph.set_entry_point("agent")
    graph.add_conditional_edges(
        "agent",
        should_continue,
        {"tools": "tools", "finalize": "finalize"},
    )
    graph.add_edge("tools", "agent")
    graph.add_edge("finalize", END)

    return graph.compile()


class HomeSearchAgent:
    """Answers one natural-language home search per run() call."""

    def __init__(self, settings: Settings, llm: BaseChatModel, toolbox: HomeSearchToolbox):
        self.max_turns = settings.orchestrator.max_turns
        self.graph = build_home_search_graph(settings, llm, toolbox)

    async def run(self, query: str) -> tuple[list[HomeRecord], list[ToolInvocation]]:
        """
        Run the tool-calling loop for a query.

        Returns:
            (homes, tool_invocations) — the invocation log is fresh per run.

        Raises:
            OrchestrationError: Unknown tool, search before a query was known,
                malformed tool arguments, or the turn ceiling was hit.
        """
        logger.info("home_search_started", query=query)
        # Every turn is two supersteps (agent + tools); leave room for finalize
        # so MaxTurnsExceededError fires before LangGraph's own limit.
        final_state = await self.graph.ainvoke(
            create_initial_state(query),
            config={"recursion_limit": self.max_turns * 2 + 5},
        )
        return final_state.get("homes") or [], final_state.get("tool_invocations") or []
