"""Bounded tool-calling control loop.

One run drives the tool-calling model until it produces a content brief
or the iteration budget runs out:

    for each iteration (at most max_iterations):
        ask the model for one turn, offering every registered tool
        (forced to generate_content_brief in the last
         forced_brief_iterations iterations)
        no tool calls -> "thinking" event; stop if a brief already exists
        tool calls    -> phase, tool_call, [graph_update], tool_result
                         or error, per call in the order requested
        stop once a brief has been produced

Outcomes:
    success -> exactly one "complete" event, emitted last, and the brief
               is returned
    failure -> AgentRunError raised; no "complete" event

A single failing tool call emits one "error" event and the model sees
the error as that call's tool result. A failing model request emits one
"error" event and the loop moves on to the next iteration.

The transcript is an immutable value; every step builds a new one.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from .brief import BriefSynthesizer
from .config import Settings
from .errors import AgentRunError, ToolError
from .graph_store import GraphStore
from .llm import LongFormModel, ToolCall, ToolCallingModel, ToolChoice, forced_tool_choice
from .prompts import (
    build_system_prompt,
    build_user_message,
    performance_feedback_line,
    preferred_sources_line,
)
from .tools import (
    BRIEF_TOOL,
    ToolExecutor,
    detect_phase,
    serialize_result,
    summarize_result,
    tool_definitions,
)
from .tools_web import WebResearchTool
from .types import CONTENT_TYPES, AgentEvent, ContentBrief

logger = logging.getLogger(__name__)

EventSink = Callable[[AgentEvent], None]


@dataclass(frozen=True)
class Transcript:
    """Conversation history as an immutable tuple of chat messages."""

    messages: Tuple[Dict[str, Any], ...] = ()

    @classmethod
    def start(cls, system_prompt: str, user_message: str) -> "Transcript":
        return cls(
            (
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_message},
            )
        )

    def append(self, *messages: Dict[str, Any]) -> "Transcript":
        return Transcript(self.messages + tuple(messages))

    def as_list(self) -> List[Dict[str, Any]]:
        return [dict(m) for m in self.messages]

    def __len__(self) -> int:
        return len(self.messages)


# ---------------------------------------------------------------------------
# Dynamic context (best effort)
# ---------------------------------------------------------------------------

def fetch_top_sources(graph_store: Any) -> Optional[List[Dict[str, Any]]]:
    if graph_store is None:
        return None
    try:
        return graph_store.get_top_source_domains()
    except Exception as e:
        logger.debug("No prior source data: %s", e)
        return None


def fetch_average_score(graph_store: Any) -> Optional[Dict[str, Any]]:
    if graph_store is None:
        return None
    try:
        return graph_store.get_average_geo_score()
    except Exception as e:
        logger.debug("No prior brief scores: %s", e)
        return None


def build_dynamic_context(graph_store: Any) -> str:
    """Prior-run hints for the system prompt; empty when nothing is known."""
    parts: List[str] = []

    top_sources = fetch_top_sources(graph_store)
    if top_sources:
        parts.append(preferred_sources_line(top_sources))

    score_data = fetch_average_score(graph_store)
    if score_data and score_data.get("avgScore") and score_data.get("briefCount", 0) > 0:
        parts.append(performance_feedback_line(score_data["avgScore"], score_data["briefCount"]))

    return "\n\n".join(parts)


def parse_tool_arguments(raw: str) -> Dict[str, Any]:
    try:
        args = json.loads(raw or "{}")
    except json.JSONDecodeError as e:
        raise ToolError(f"Invalid tool arguments: {e}") from e
    if not isinstance(args, dict):
        raise ToolError("Tool arguments must be a JSON object")
    return args


# ---------------------------------------------------------------------------
# Loop
# ---------------------------------------------------------------------------

class AgentLoop:
    """Drives one research-to-brief run at a time."""

    def __init__(
        self,
        tool_model: Any,
        executor: ToolExecutor,
        graph_store: Optional[Any] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.tool_model = tool_model
        self.executor = executor
        self.graph_store = graph_store
        self.settings = settings or Settings()

    def tool_choice_for(self, iteration: int) -> ToolChoice:
        """Force brief generation in the final iterations of the budget."""
        cutoff = self.settings.max_iterations - self.settings.forced_brief_iterations
        if iteration >= cutoff:
            return forced_tool_choice(BRIEF_TOOL)
        return "auto"

    def run(
        self,
        location: str,
        topic: str,
        content_type: str,
        on_event: EventSink,
    ) -> ContentBrief:
        if content_type not in CONTENT_TYPES:
            raise ValueError(f"content_type must be one of {', '.join(CONTENT_TYPES)}")

        dynamic_context = build_dynamic_context(self.graph_store)
        transcript = Transcript.start(
            build_system_prompt(dynamic_context),
            build_user_message(location, topic, content_type),
        )
        tools = tool_definitions()
        max_iterations = self.settings.max_iterations

        final_brief: Optional[ContentBrief] = None
        total_nodes_added = 0

        for i in range(max_iterations):
            logger.info("Iteration %d/%d for %s", i + 1, max_iterations, location)
            try:
                turn = self.tool_model.complete(transcript.as_list(), tools, self.tool_choice_for(i))
                transcript = transcript.append(turn.to_message())

                if not turn.tool_calls:
                    if turn.content:
                        on_event(AgentEvent.thinking(turn.content))
                    if final_brief is not None:
                        break
                    continue

                for call in turn.tool_calls:
                    transcript, brief, nodes_added = self._handle_tool_call(call, transcript, on_event)
                    total_nodes_added += nodes_added
                    if brief is not None:
                        final_brief = brief

                if final_brief is not None:
                    break
            except Exception as e:
                logger.warning("Iteration %d failed: %s", i + 1, e)
                on_event(AgentEvent.error(str(e) or "Agent iteration failed"))
                if i >= max_iterations - 1:
                    break

        if final_brief is None:
            raise AgentRunError("Agent failed to generate a content brief after maximum iterations")

        logger.info(
            "Run complete: brief %s, %d graph nodes added",
            final_brief.id,
            total_nodes_added,
        )
        on_event(AgentEvent.complete(final_brief))
        return final_brief

    def _handle_tool_call(
        self,
        call: ToolCall,
        transcript: Transcript,
        on_event: EventSink,
    ) -> Tuple[Transcript, Optional[ContentBrief], int]:
        """Run one tool call. Returns (new transcript, brief if produced, nodes added)."""
        name = call.name
        on_event(AgentEvent.phase_change(detect_phase(name)))

        parse_error: Optional[ToolError] = None
        try:
            args = parse_tool_arguments(call.arguments)
        except ToolError as e:
            args, parse_error = {}, e
        on_event(AgentEvent.tool_call(name, args))

        started = time.monotonic()
        try:
            if parse_error is not None:
                raise parse_error
            outcome = self.executor.execute(name, args)
        except Exception as e:
            message = str(e) or "Tool execution failed"
            logger.warning("Tool %s failed: %s", name, message)
            on_event(AgentEvent.error(f"{name}: {message}"))
            tool_message = {
                "role": "tool",
                "tool_call_id": call.id,
                "content": json.dumps({"error": message}),
            }
            return transcript.append(tool_message), None, 0

        logger.debug("Tool %s finished in %.2fs", name, time.monotonic() - started)

        nodes_added = outcome.nodes_added or 0
        if nodes_added:
            on_event(AgentEvent.graph_update(nodes_added))

        on_event(AgentEvent.tool_result(name, summarize_result(name, outcome.result)))

        content = serialize_result(outcome.result)[: self.settings.tool_result_char_limit]
        transcript = transcript.append(
            {"role": "tool", "tool_call_id": call.id, "content": content}
        )

        brief = outcome.result if name == BRIEF_TOOL and isinstance(outcome.result, ContentBrief) else None
        return transcript, brief, nodes_added


# ---------------------------------------------------------------------------
# Run entry point
# ---------------------------------------------------------------------------

def build_agent(settings: Settings, brief_store: Optional[Any] = None) -> AgentLoop:
    """Wire the production adapters from settings."""
    graph_store = GraphStore(
        uri=settings.neo4j_uri,
        user=settings.neo4j_user,
        database=settings.neo4j_database,
    )
    synthesizer = BriefSynthesizer(LongFormModel.from_settings(settings), graph_store=graph_store)
    executor = ToolExecutor(
        web_tool=WebResearchTool(),
        graph_store=graph_store,
        synthesizer=synthesizer,
        brief_store=brief_store,
    )
    return AgentLoop(
        tool_model=ToolCallingModel.from_settings(settings),
        executor=executor,
        graph_store=graph_store,
        settings=settings,
    )


def run_agent(
    location: str,
    topic: str,
    content_type: str,
    on_event: EventSink,
    settings: Optional[Settings] = None,
    brief_store: Optional[Any] = None,
) -> ContentBrief:
    """Run one agent session end to end and return the finished brief.

    Raises AgentRunError when no brief was produced within the budget.
    """
    agent = build_agent(settings or Settings(), brief_store=brief_store)
    try:
        return agent.run(location, topic, content_type, on_event)
    finally:
        agent.graph_store.close()
