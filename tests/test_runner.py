"""Tests for PipelineRunner: recording, output merge and failure policy."""

import pytest

from course_creator.exceptions import SessionNotFoundError
from course_creator.pipeline import LlmStage, SequentialStage
from course_creator.pipeline.course_creator import build_course_creator
from course_creator.pipeline.events import DELEGATION_FAILED, Content
from course_creator.runner import PipelineRunner
from course_creator.sessions import BaseSessionService, InMemorySessionService
from tests.fixtures.scripted_reasoning import ScriptedReasoning, tool_round, verdict

APP_NAME = "test-app"
QUERY = Content.from_text("Create a course on the history of Coffee.", role="user")


async def run_all(runner, user_id="user-1", session_id="session-1"):
    return [event async for event in runner.run(user_id, session_id, QUERY)]


@pytest.fixture
def make_runner(session_service, pipeline_settings):
    def _make(script, max_iterations=3, stage=None):
        reasoning = ScriptedReasoning(script)
        stage = stage or build_course_creator(
            max_iterations=max_iterations, settings=pipeline_settings
        )
        return PipelineRunner(APP_NAME, stage, session_service, reasoning), reasoning
    return _make


@pytest.mark.integration
class TestCourseCreatorScenarios:

    @pytest.mark.asyncio
    async def test_judge_passes_on_third_iteration(self, make_runner, session, session_service):
        runner, _ = make_runner({
            "researcher": ["facts v1", "facts v2", "facts v3"],
            "judge": [verdict("fail"), verdict("fail"), verdict("pass")],
        })

        events = await run_all(runner)

        assert [e.author for e in events] == ["researcher", "judge", "checker"] * 3
        assert [e.actions.escalate for e in events] == [False] * 8 + [True]
        assert events[-1].text == "Research approved. Moving to content creation."

        # The user message plus every forwarded event
        assert len(session.events) == 10
        assert session.events[0].author == "user"
        assert session.events[1:] == events
        assert session.state["judge_output"]["status"] == "pass"

    @pytest.mark.asyncio
    async def test_judge_never_passes(self, make_runner, session):
        runner, reasoning = make_runner({
            "researcher": ["facts"],
            "judge": [verdict("fail")],
        })

        events = await run_all(runner)

        assert len(events) == 9
        assert not any(e.actions.escalate for e in events)
        assert all(
            e.text == "Research failed quality check. Retrying..."
            for e in events if e.author == "checker"
        )
        assert reasoning.invocations == ["researcher", "judge"] * 3
        assert session.state["judge_output"] == {"status": "fail", "feedback": "Research failed."}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("k", [1, 2, 3])
    async def test_escalation_at_pass_k(self, make_runner, session, k):
        runner, reasoning = make_runner(
            {
                "researcher": ["facts"],
                "judge": [verdict("fail")] * (k - 1) + [verdict("pass")],
            },
            max_iterations=3,
        )

        events = await run_all(runner)

        assert len(events) == 3 * k
        assert events[-1].actions.escalate
        assert reasoning.invocations.count("researcher") == k

    @pytest.mark.asyncio
    async def test_tool_events_are_forwarded_in_order(self, make_runner, session):
        runner, _ = make_runner(
            {
                "researcher": [tool_round("google_search", "facts")],
                "judge": [verdict("pass")],
            },
            max_iterations=1,
        )

        events = await run_all(runner)

        assert [e.author for e in events] == ["researcher"] * 3 + ["judge", "checker"]
        assert [c.name for c in events[0].function_calls] == ["google_search"]
        assert [r.name for r in events[1].function_responses] == ["google_search"]
        assert dict(events[0].actions.state_delta) == {}


@pytest.mark.integration
class TestOutputMerge:

    @pytest.mark.asyncio
    async def test_last_write_wins(self, make_runner, session):
        runner, _ = make_runner(
            {
                "researcher": ["facts"],
                "judge": [[verdict("fail", "first"), verdict("fail", "second")]],
            },
            max_iterations=1,
        )

        events = await run_all(runner)

        judge_events = [e for e in events if e.author == "judge"]
        assert len(judge_events) == 2
        assert session.state["judge_output"] == {"status": "fail", "feedback": "second"}

    @pytest.mark.asyncio
    async def test_delta_is_attached_to_event(self, make_runner, session):
        runner, _ = make_runner(
            {"researcher": ["facts"], "judge": [verdict("pass", "good")]}, max_iterations=1
        )

        events = await run_all(runner)

        judge_event = next(e for e in events if e.author == "judge")
        assert dict(judge_event.actions.state_delta) == {
            "judge_output": {"status": "pass", "feedback": "good"}
        }

    @pytest.mark.asyncio
    async def test_fenced_json_is_accepted(self, make_runner, session):
        fenced = "```json\n" + verdict("pass") + "\n```"
        runner, _ = make_runner(
            {"researcher": ["facts"], "judge": [fenced]}, max_iterations=2
        )

        events = await run_all(runner)

        assert events[-1].actions.escalate
        assert session.state["judge_output"]["status"] == "pass"

    @pytest.mark.asyncio
    async def test_invalid_structured_output_is_not_merged(self, make_runner, session):
        runner, _ = make_runner(
            {"researcher": ["facts"], "judge": ["looks fine to me"]}, max_iterations=2
        )

        events = await run_all(runner)

        assert len(events) == 6
        assert "judge_output" not in session.state
        assert not any(e.actions.escalate for e in events)

    @pytest.mark.asyncio
    async def test_verdict_from_previous_run_does_not_approve(self, make_runner, session):
        first, _ = make_runner(
            {"researcher": ["facts"], "judge": [verdict("pass")]}, max_iterations=1
        )
        assert (await run_all(first))[-1].actions.escalate

        second, reasoning = make_runner(
            {"researcher": ["facts"], "judge": ["not json at all"]}, max_iterations=2
        )
        events = await run_all(second)

        assert [e.author for e in events] == ["researcher", "judge", "checker"] * 2
        assert not any(e.actions.escalate for e in events)
        assert reasoning.invocations == ["researcher", "judge"] * 2
        # The earlier verdict stays in state; it just no longer counts
        assert session.state["judge_output"]["status"] == "pass"

    @pytest.mark.asyncio
    async def test_stage_without_schema_stores_raw_text(self, session_service, session):
        stage = SequentialStage(
            name="root",
            stages=(LlmStage(name="writer", output_key="draft"),),
        )
        runner = PipelineRunner(
            APP_NAME, stage, session_service, ScriptedReasoning({"writer": [["one", "two"]]})
        )

        await run_all(runner)

        assert session.state["draft"] == "two"


@pytest.mark.integration
class TestFailurePolicy:

    @pytest.mark.asyncio
    async def test_delegation_failure_ends_run_with_error_event(self, make_runner, session):
        runner, reasoning = make_runner({
            "researcher": ["facts", RuntimeError("provider unavailable")],
            "judge": [verdict("fail")],
        })

        events = await run_all(runner)

        assert [e.author for e in events] == ["researcher", "judge", "checker", "researcher"]
        error = events[-1]
        assert error.is_error
        assert error.error_code == DELEGATION_FAILED
        assert error.error_message == "provider unavailable"
        assert session.events[-1] is error
        assert reasoning.invocations == ["researcher", "judge", "researcher"]

    @pytest.mark.asyncio
    async def test_missing_session_raises(self, make_runner):
        runner, _ = make_runner({"researcher": ["facts"]})

        with pytest.raises(SessionNotFoundError):
            await run_all(runner, session_id="missing")

    @pytest.mark.asyncio
    async def test_store_failure_propagates_and_keeps_earlier_events(
        self, pipeline_settings
    ):
        class FailingStore(InMemorySessionService):
            def __init__(self):
                super().__init__()
                self.appends = 0

            async def _append(self, session, event):
                self.appends += 1
                if self.appends > 2:
                    raise OSError("disk full")
                await super()._append(session, event)

        store = FailingStore()
        session = await store.create_session(APP_NAME, "user-1", "session-1")
        runner = PipelineRunner(
            APP_NAME,
            build_course_creator(settings=pipeline_settings),
            store,
            ScriptedReasoning({"researcher": ["facts"], "judge": [verdict("fail")]}),
        )

        with pytest.raises(OSError):
            await run_all(runner)

        assert [e.author for e in session.events] == ["user", "researcher"]

    def test_duplicate_stage_names_are_rejected(self, session_service):
        stage = SequentialStage(
            name="root",
            stages=(LlmStage(name="dup"), LlmStage(name="dup")),
        )
        with pytest.raises(ValueError):
            PipelineRunner(APP_NAME, stage, session_service, ScriptedReasoning({}))


@pytest.mark.unit
class TestSessionService:

    @pytest.mark.asyncio
    async def test_generates_id(self, session_service):
        session = await session_service.create_session(APP_NAME, "user-1")
        assert session.id
        assert await session_service.get_session(APP_NAME, "user-1", session.id) is session

    @pytest.mark.asyncio
    async def test_duplicate_id_raises(self, session_service, session):
        from course_creator.exceptions import SessionExistsError

        with pytest.raises(SessionExistsError):
            await session_service.create_session(APP_NAME, "user-1", "session-1")

    @pytest.mark.asyncio
    async def test_sessions_are_scoped_by_user(self, session_service, session):
        assert await session_service.get_session(APP_NAME, "user-2", "session-1") is None
        assert await session_service.list_sessions(APP_NAME, "user-1") == [session]
        assert await session_service.list_sessions(APP_NAME, "user-2") == []

    @pytest.mark.asyncio
    async def test_partial_event_delta_is_not_merged(self, session_service, session):
        from course_creator.pipeline.events import Event, EventActions

        await session_service.append_event(
            session,
            Event(author="judge", partial=True, actions=EventActions(state_delta={"k": 1})),
        )

        assert "k" not in session.state
        assert len(session.events) == 1

    def test_service_is_abstract(self):
        with pytest.raises(TypeError):
            BaseSessionService()

    @pytest.mark.asyncio
    async def test_to_dict(self, session):
        assert session.to_dict() == {"id": "session-1", "userId": "user-1", "appName": APP_NAME}
