from __future__ import annotations

import json

import pytest

from conftest import (
    BRIEF_ARGS,
    SIGNAL_ARGS,
    FakeLongFormModel,
    ScriptedToolModel,
    sample_brief_payload,
    tool_call,
    tool_turn,
)
from geoagent.agent_loop import AgentLoop, Transcript, build_dynamic_context
from geoagent.brief import BriefSynthesizer
from geoagent.config import Settings
from geoagent.errors import AgentRunError
from geoagent.llm import ModelTurn, ToolCall, forced_tool_choice
from geoagent.prompts import SYSTEM_PROMPT
from geoagent.tools import BRIEF_TOOL, ToolExecutor

FORCED = forced_tool_choice(BRIEF_TOOL)


def run(loop, events, content_type="market_report"):
    return loop.run("Austin, TX", "Housing market outlook", content_type, events.append)


def types_of(events):
    return [e.type for e in events]


def tool_messages(request):
    return [m for m in request["messages"] if m["role"] == "tool"]


@pytest.fixture
def make_loop(executor, graph_store):
    def _make(turns, settings=None):
        model = ScriptedToolModel(turns)
        return AgentLoop(model, executor, graph_store, settings or Settings()), model

    return _make


class TestTranscript:
    def test_append_returns_new_value(self):
        start = Transcript.start("system", "user")
        longer = start.append({"role": "assistant", "content": "hi"})
        assert len(start) == 2
        assert len(longer) == 3
        assert longer.messages[:2] == start.messages

    def test_as_list_copies_messages(self):
        transcript = Transcript.start("system", "user")
        messages = transcript.as_list()
        messages[0]["content"] = "changed"
        assert transcript.messages[0]["content"] == "system"


class TestDynamicContext:
    def test_empty_graph(self, graph_store):
        assert build_dynamic_context(graph_store) == ""

    def test_no_graph(self):
        assert build_dynamic_context(None) == ""

    def test_sources_and_score(self, graph_store):
        graph_store.top_sources = [{"domain": "redfin.com", "signalCount": 4}, {"domain": "census.gov", "signalCount": 2}]
        graph_store.avg_score = {"avgScore": 72, "briefCount": 3}
        context = build_dynamic_context(graph_store)
        assert "redfin.com, census.gov" in context
        assert "across 3 prior briefs is 72/100" in context

    def test_zero_average_is_omitted(self, graph_store):
        graph_store.avg_score = {"avgScore": None, "briefCount": 0}
        assert build_dynamic_context(graph_store) == ""

    def test_read_failures_are_swallowed(self, graph_store):
        graph_store.fail_reads = True
        assert build_dynamic_context(graph_store) == ""


class TestHappyPath:
    def test_event_sequence(self, make_loop, events):
        loop, model = make_loop(
            [
                tool_turn(tool_call("search_market_data", {"query": "median price", "location": "Austin, TX"}, "c1")),
                tool_turn(tool_call("store_market_signal", SIGNAL_ARGS, "c2")),
                tool_turn(tool_call(BRIEF_TOOL, BRIEF_ARGS, "c3")),
            ]
        )

        brief = run(loop, events)

        assert types_of(events) == [
            "phase", "tool_call", "tool_result",
            "phase", "tool_call", "graph_update", "tool_result",
            "phase", "tool_call", "tool_result",
            "complete",
        ]
        assert [e.phase for e in events if e.type == "phase"] == ["research", "connect", "generate"]
        assert events[-1].brief is brief
        graph_update = events[5]
        assert graph_update.nodes_added == 2 and graph_update.edges_added == 2
        assert len(model.requests) == 3

    def test_transcript_threads_tool_results(self, make_loop, events):
        loop, model = make_loop(
            [
                tool_turn(tool_call("search_market_data", {"query": "q", "location": "Austin, TX"}, "c1")),
                tool_turn(tool_call(BRIEF_TOOL, BRIEF_ARGS, "c2")),
            ]
        )
        run(loop, events)

        second = model.requests[1]["messages"]
        assert second[0]["role"] == "system" and second[1]["role"] == "user"
        assert second[2]["role"] == "assistant"
        assert second[2]["tool_calls"][0]["id"] == "c1"
        assert second[3]["role"] == "tool" and second[3]["tool_call_id"] == "c1"
        assert len(json.loads(second[3]["content"])["results"]) == 2

    def test_multiple_calls_in_one_turn_run_in_order(self, make_loop, events, web_tool):
        loop, _ = make_loop(
            [
                tool_turn(
                    tool_call("search_market_data", {"query": "a", "location": "Austin, TX"}, "c1"),
                    tool_call("search_neighborhood_info", {"neighborhood": "Mueller", "location": "Austin, TX"}, "c2"),
                ),
                tool_turn(tool_call(BRIEF_TOOL, BRIEF_ARGS, "c3")),
            ]
        )
        run(loop, events)
        assert [c[0] for c in web_tool.calls] == ["market", "neighborhood"]

    def test_thinking_event_for_text_turn(self, make_loop, events):
        loop, _ = make_loop(
            [
                ModelTurn(content="Let me check the graph first.", finish_reason="stop"),
                tool_turn(tool_call(BRIEF_TOOL, BRIEF_ARGS)),
            ]
        )
        run(loop, events)
        assert events[0].type == "thinking"
        assert events[0].content == "Let me check the graph first."

    def test_dynamic_context_reaches_system_prompt(self, make_loop, events, graph_store):
        graph_store.top_sources = [{"domain": "zillow.com", "signalCount": 5}]
        loop, model = make_loop([tool_turn(tool_call(BRIEF_TOOL, BRIEF_ARGS))])
        run(loop, events)
        system = model.requests[0]["messages"][0]["content"]
        assert system.startswith(SYSTEM_PROMPT)
        assert "zillow.com" in system

    def test_context_failure_does_not_block_run(self, make_loop, events, graph_store):
        graph_store.fail_reads = True
        loop, model = make_loop([tool_turn(tool_call(BRIEF_TOOL, BRIEF_ARGS))])
        run(loop, events)
        assert model.requests[0]["messages"][0]["content"] == SYSTEM_PROMPT
        assert types_of(events)[-1] == "complete"

    def test_rejects_unknown_content_type(self, make_loop, events):
        loop, model = make_loop([])
        with pytest.raises(ValueError):
            run(loop, events, content_type="press_release")
        assert model.requests == []


class TestForcedGeneration:
    def test_last_two_iterations_are_forced(self, executor, graph_store, web_tool, events):
        class StallingModel(ScriptedToolModel):
            def complete(self, messages, tools, tool_choice="auto"):
                super().complete(messages, tools, tool_choice)
                if tool_choice == "auto":
                    return ModelTurn(content="Still researching.", finish_reason="stop")
                return tool_turn(tool_call(BRIEF_TOOL, BRIEF_ARGS, f"c{len(self.requests)}"))

        # the first forced attempt gets unparseable output, the second succeeds
        longform = FakeLongFormModel("not json", json.dumps(sample_brief_payload()))
        synthesizer = BriefSynthesizer(longform, graph_store=graph_store)
        loop = AgentLoop(StallingModel(), ToolExecutor(web_tool, graph_store, synthesizer), graph_store, Settings())

        run(loop, events)

        choices = [r["tool_choice"] for r in loop.tool_model.requests]
        assert len(choices) == 15
        assert choices[:13] == ["auto"] * 13
        assert choices[13] == FORCED
        assert choices[14] == FORCED
        assert types_of(events).count("error") == 1
        assert types_of(events)[-1] == "complete"

    def test_tool_choice_policy(self, make_loop):
        loop, _ = make_loop([], Settings(max_iterations=5, forced_brief_iterations=2))
        assert [loop.tool_choice_for(i) for i in range(5)] == ["auto", "auto", "auto", FORCED, FORCED]


class TestFailureIsolation:
    def test_failing_tool_emits_one_error_and_run_continues(self, make_loop, events, web_tool):
        web_tool.fail_search = True
        loop, model = make_loop(
            [
                tool_turn(tool_call("search_market_data", {"query": "q", "location": "Austin, TX"}, "c1")),
                tool_turn(tool_call(BRIEF_TOOL, BRIEF_ARGS, "c2")),
            ]
        )

        run(loop, events)

        errors = [e for e in events if e.type == "error"]
        assert len(errors) == 1
        assert "Tavily quota exceeded" in errors[0].message
        assert types_of(events)[-1] == "complete"
        tool_msg = tool_messages(model.requests[1])[0]
        assert json.loads(tool_msg["content"]) == {"error": "Tavily quota exceeded"}

    def test_malformed_arguments_are_a_tool_failure(self, make_loop, events):
        loop, model = make_loop(
            [
                tool_turn(ToolCall(id="c1", name="store_market_signal", arguments="{not json")),
                tool_turn(tool_call(BRIEF_TOOL, BRIEF_ARGS, "c2")),
            ]
        )
        run(loop, events)

        assert types_of(events)[:3] == ["phase", "tool_call", "error"]
        assert events[1].args == {}
        assert "error" in json.loads(tool_messages(model.requests[1])[0]["content"])

    def test_model_error_skips_iteration(self, make_loop, events):
        loop, model = make_loop([RuntimeError("rate limited"), tool_turn(tool_call(BRIEF_TOOL, BRIEF_ARGS))])
        run(loop, events)
        assert events[0].type == "error" and events[0].message == "rate limited"
        assert len(model.requests) == 2
        assert types_of(events)[-1] == "complete"

    def test_unknown_tool_is_reported_as_result(self, make_loop, events):
        loop, model = make_loop(
            [
                tool_turn(tool_call("get_weather", {"city": "Austin"}, "c1")),
                tool_turn(tool_call(BRIEF_TOOL, BRIEF_ARGS, "c2")),
            ]
        )
        run(loop, events)

        assert events[0].phase == "research"
        assert events[2].type == "tool_result" and events[2].summary == "Completed"
        content = json.loads(tool_messages(model.requests[1])[0]["content"])
        assert content == {"error": "Unknown tool: get_weather"}

    def test_tool_results_are_truncated(self, make_loop, events, web_tool):
        web_tool.page_text = "x" * 500
        loop, model = make_loop(
            [
                tool_turn(tool_call("extract_page_content", {"urls": ["https://a.com"]}, "c1")),
                tool_turn(tool_call(BRIEF_TOOL, BRIEF_ARGS, "c2")),
            ],
            Settings(tool_result_char_limit=100),
        )
        run(loop, events)
        assert len(tool_messages(model.requests[1])[0]["content"]) == 100


class TestTermination:
    def test_budget_exhaustion_raises_without_complete(self, make_loop, events):
        loop, model = make_loop([])
        with pytest.raises(AgentRunError, match="maximum iterations"):
            run(loop, events)
        assert "complete" not in types_of(events)
        assert len(model.requests) == 15

    def test_every_iteration_failing(self, make_loop, events):
        loop, _ = make_loop([RuntimeError("down")] * 3, Settings(max_iterations=3, forced_brief_iterations=1))
        with pytest.raises(AgentRunError):
            run(loop, events)
        assert types_of(events) == ["error", "error", "error"]

    def test_stops_after_brief(self, make_loop, events):
        loop, model = make_loop(
            [
                tool_turn(tool_call(BRIEF_TOOL, BRIEF_ARGS, "c1")),
                tool_turn(tool_call("search_market_data", {"query": "q", "location": "Austin, TX"}, "c2")),
            ]
        )
        run(loop, events)
        assert len(model.requests) == 1
        assert types_of(events).count("complete") == 1

    def test_brief_is_recorded_in_graph(self, make_loop, events, graph_store):
        loop, _ = make_loop([tool_turn(tool_call(BRIEF_TOOL, BRIEF_ARGS))])
        brief = run(loop, events)
        assert graph_store.briefs[0]["brief_id"] == brief.id
