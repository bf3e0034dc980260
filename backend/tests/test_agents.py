"""
Unit tests for the agent system.
Tests BaseAgent, OpponentAgent, ScoringAgent, CoachAgent and DebateOrchestrator.
"""

import asyncio
import json
from datetime import timedelta

import pytest
from unittest.mock import AsyncMock

from debatesphere.agents import (
    BaseAgent, CoachAgent, DebateOrchestrator, OpponentAgent, ScoringAgent, classify_response,
    estimate_confidence, parse_analysis
)
from debatesphere.agents.coach_agent import next_skill_level
from debatesphere.agents.opponent_agent import REASONING_FALLBACK, SUGGESTIONS_FALLBACK
from debatesphere.agents.scoring_agent import DEGRADED_NOTE
from debatesphere.core.errors import (
    ConflictError, GenerationUnavailable, InvalidTransition, ReplySuperseded, ValidationError
)
from debatesphere.llm.base import LLMProvider, LLMResponse
from debatesphere.models import DebateMessage, EvidenceItem

from conftest import START
from test_performance import make_metrics


def failing_provider(error=None):
    provider = AsyncMock(spec=LLMProvider)
    provider.model = "broken-model"
    provider.chat_completion.side_effect = error or RuntimeError("connection refused")
    return provider


def replying_provider(content, model="test-model"):
    provider = AsyncMock(spec=LLMProvider)
    provider.model = model
    provider.chat_completion.return_value = LLMResponse(
        content=content,
        model=model,
        usage={"prompt_tokens": 20, "completion_tokens": 10, "total_tokens": 30},
        latency_ms=12.5,
    )
    return provider


def make_message(turn, sender="user", content=None, session_id="s1"):
    return DebateMessage(
        message_id=f"m{turn}",
        session_id=session_id,
        sender_type=sender,
        content=content or f"message {turn}",
        turn_number=turn,
        timestamp=START + timedelta(seconds=turn),
    )


class TestHeuristics:
    """Tests for reply classification and confidence."""

    @pytest.mark.parametrize("text,expected", [
        ("Why would that follow?", "question"),
        ("That raises a question about costs.", "question"),
        ("However, the numbers say otherwise.", "rebuttal"),
        ("My counter to that is simple.", "rebuttal"),
        ("Let me clarify my position.", "clarification"),
        ("Lower taxes drive growth.", "argument"),
    ])
    def test_classify_response(self, text, expected):
        assert classify_response(text) == expected

    def test_confidence_base(self):
        assert estimate_confidence("Short claim.") == 0.5

    def test_confidence_markers(self):
        assert estimate_confidence("Research shows this because of incentives.") == 0.8

    def test_confidence_length(self):
        assert estimate_confidence(" ".join(["word"] * 60)) == 0.6
        assert estimate_confidence(" ".join(["word"] * 120)) == 0.7

    def test_confidence_capped(self):
        text = " ".join(["data"] * 120) + " because"
        assert estimate_confidence(text) == 0.95


class TestBaseAgent:
    """Tests for BaseAgent.call_llm."""

    def test_init(self):
        agent = BaseAgent("TestAgent", "test prompt", timeout_seconds=5)
        assert agent.name == "TestAgent"
        assert agent.system_prompt == "test prompt"
        assert agent.has_provider is False
        assert agent.model_name is None

    @pytest.mark.asyncio
    async def test_call_llm_no_provider(self):
        agent = BaseAgent("TestAgent", "prompt")
        with pytest.raises(GenerationUnavailable, match="LLM not configured"):
            await agent.call_llm([{"role": "user", "content": "hi"}])

    @pytest.mark.asyncio
    async def test_call_llm_success(self):
        agent = BaseAgent("TestAgent", "prompt")
        provider = replying_provider("LLM response")
        agent.set_llm_provider(provider)

        result = await agent.call_llm([{"role": "user", "content": "hi"}], temperature=0.2)
        assert result.content == "LLM response"
        provider.chat_completion.assert_called_once()
        assert provider.chat_completion.call_args.kwargs["temperature"] == 0.2

    @pytest.mark.asyncio
    async def test_call_llm_provider_error(self):
        agent = BaseAgent("TestAgent", "prompt")
        agent.set_llm_provider(failing_provider())

        with pytest.raises(GenerationUnavailable) as exc_info:
            await agent.call_llm([{"role": "user", "content": "hi"}])
        assert isinstance(exc_info.value.cause, RuntimeError)
        assert exc_info.value.kind == "generation_unavailable"

    @pytest.mark.asyncio
    async def test_call_llm_timeout(self):
        async def slow(*args, **kwargs):
            await asyncio.sleep(1)
            return LLMResponse(content="too late")

        provider = AsyncMock(spec=LLMProvider)
        provider.chat_completion.side_effect = slow
        agent = BaseAgent("TestAgent", "prompt", timeout_seconds=0.01)
        agent.set_llm_provider(provider)

        with pytest.raises(GenerationUnavailable, match="timed out"):
            await agent.call_llm([{"role": "user", "content": "hi"}])


class TestOpponentAgent:
    """Tests for OpponentAgent."""

    @pytest.mark.asyncio
    async def test_system_prompt(self, session, topic):
        agent = OpponentAgent()
        prompt = agent.build_system_prompt(session, topic)
        assert "Your Side: con" in prompt
        assert topic.title in prompt
        assert "Tax cuts widen deficits" in prompt
        assert "Lower taxes spur investment" not in prompt

    def test_window_keeps_latest_last(self):
        agent = OpponentAgent(context_messages=3)
        history = [make_message(1), make_message(2, "ai"), make_message(3), make_message(4, "ai")]
        latest = make_message(5, content="latest point")

        window = agent.build_window(latest, history + [latest])
        assert [m["content"] for m in window] == ["message 3", "message 4", "latest point"]
        assert [m["role"] for m in window] == ["user", "assistant", "user"]

    def test_window_of_one(self):
        agent = OpponentAgent(context_messages=1)
        latest = make_message(3)
        assert agent.build_window(latest, [make_message(1), make_message(2, "ai"), latest]) == [
            {"role": "user", "content": "message 3"}
        ]

    @pytest.mark.asyncio
    async def test_respond(self, session, topic):
        agent = OpponentAgent(enrichment_enabled=False)
        provider = replying_provider("However, deficits matter more than you admit.")
        agent.set_llm_provider(provider)

        reply = await agent.respond(session, topic, make_message(1, session_id=session.session_id))
        assert reply["agent"] == "opponent"
        assert reply["response"] == "However, deficits matter more than you admit."
        assert reply["message_type"] == "rebuttal"
        meta = reply["ai_response"]
        assert meta.response_kind == "rebuttal"
        assert meta.model == "test-model"
        assert meta.tokens.total == 30
        assert meta.response_time_ms == 12.5
        assert meta.reasoning is None
        assert provider.chat_completion.call_count == 1

    @pytest.mark.asyncio
    async def test_respond_uses_difficulty_temperature(self, services, user, topic):
        session = await services.sessions.start(
            user.user_id, topic.topic_id, "pro", ai_difficulty="hard"
        )
        agent = OpponentAgent(enrichment_enabled=False)
        provider = replying_provider("Growth is not guaranteed.")
        agent.set_llm_provider(provider)

        reply = await agent.respond(session, topic, make_message(1))
        assert reply["message_type"] == "argument"
        assert provider.chat_completion.call_args.kwargs["temperature"] == 0.3
        assert provider.chat_completion.call_args.kwargs["max_tokens"] == 500

    @pytest.mark.asyncio
    async def test_respond_failure_propagates(self, session, topic):
        agent = OpponentAgent()
        agent.set_llm_provider(failing_provider())
        with pytest.raises(GenerationUnavailable):
            await agent.respond(session, topic, make_message(1))

    @pytest.mark.asyncio
    async def test_respond_empty_reply(self, session, topic):
        agent = OpponentAgent(enrichment_enabled=False)
        agent.set_llm_provider(replying_provider("   "))
        with pytest.raises(GenerationUnavailable):
            await agent.respond(session, topic, make_message(1))

    @pytest.mark.asyncio
    async def test_enrichment(self, session, topic):
        agent = OpponentAgent()
        provider = AsyncMock(spec=LLMProvider)
        provider.model = "test-model"
        provider.chat_completion.side_effect = [
            LLMResponse(content="Deficits crowd out investment.", model="test-model"),
            LLMResponse(content="It answers the growth claim directly.", model="test-model"),
            LLMResponse(content="1. Ask about deficits\n- Press on evidence\n\n* Cite history\n4. Extra"),
        ]
        agent.set_llm_provider(provider)

        reply = await agent.respond(session, topic, make_message(1))
        meta = reply["ai_response"]
        assert meta.reasoning == "It answers the growth claim directly."
        assert meta.suggestions == ["Ask about deficits", "Press on evidence", "Cite history"]

    @pytest.mark.asyncio
    async def test_enrichment_fallbacks(self, session, topic):
        agent = OpponentAgent()
        provider = AsyncMock(spec=LLMProvider)
        provider.model = "test-model"
        provider.chat_completion.side_effect = [
            LLMResponse(content="Deficits crowd out investment.", model="test-model"),
            RuntimeError("reasoning down"),
            RuntimeError("suggestions down"),
        ]
        agent.set_llm_provider(provider)

        reply = await agent.respond(session, topic, make_message(1))
        assert reply["response"] == "Deficits crowd out investment."
        assert reply["ai_response"].reasoning == REASONING_FALLBACK
        assert reply["ai_response"].suggestions == SUGGESTIONS_FALLBACK


class TestScoringAgent:
    """Tests for ScoringAgent and parse_analysis."""

    def test_parse_analysis_top_level(self):
        parsed = parse_analysis(
            'Here you go: {"argumentStrength": 80, "rebuttalQuality": 70, "clarity": 120, '
            '"evidenceUse": 60, "logicalConsistency": 75, "emotionalAppeal": -5, '
            '"strengths": ["Clear"], "overallFeedback": "Good"}'
        )
        assert parsed["scores"]["clarity"] == 100
        assert parsed["scores"]["emotional_appeal"] == 0
        assert parsed["feedback"].strengths == ["Clear"]
        assert parsed["feedback"].overall_feedback == "Good"

    def test_parse_analysis_nested_feedback(self):
        data = {
            "argumentStrength": 80, "rebuttalQuality": 70, "clarity": 75,
            "evidenceUse": 60, "logicalConsistency": 75, "emotionalAppeal": 65,
            "feedback": {"weaknesses": ["Few sources"], "detailedAnalysis": "Decent"},
        }
        parsed = parse_analysis(json.dumps(data))
        assert parsed["feedback"].weaknesses == ["Few sources"]
        assert parsed["feedback"].overall_feedback == "Decent"

    @pytest.mark.parametrize("text", [
        "no json here",
        "{not valid json}",
        '{"argumentStrength": 80}',
        '{"argumentStrength": "high", "rebuttalQuality": 1, "clarity": 1, '
        '"evidenceUse": 1, "logicalConsistency": 1, "emotionalAppeal": 1}',
    ])
    def test_parse_analysis_rejects(self, text):
        assert parse_analysis(text) is None

    @pytest.mark.asyncio
    async def test_no_user_messages_scores_zero_without_call(self, session, provider):
        agent = ScoringAgent()
        agent.set_llm_provider(provider)

        metrics = await agent.analyze(session, [make_message(1, "ai")])
        assert metrics.overall_score == 0
        assert metrics.feedback.weaknesses == ["No arguments provided"]
        assert metrics.feedback.suggestions == ["Start by providing your main argument"]
        assert metrics.session_metrics.ai_messages == 1
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_unparseable_reply_degrades(self, session):
        agent = ScoringAgent()
        agent.set_llm_provider(replying_provider("I think they did fine."))

        metrics = await agent.analyze(session, [make_message(1)])
        assert metrics.provenance.degraded is True
        assert all(score == 50 for score in metrics.sub_scores().values())
        assert metrics.overall_score == 50
        assert metrics.feedback.overall_feedback == DEGRADED_NOTE

    @pytest.mark.asyncio
    async def test_mock_rubric(self, session, topic, provider):
        agent = ScoringAgent(engine_version="2.0")
        agent.set_llm_provider(provider)

        messages = [make_message(1, content="Lower taxes help"), make_message(2, "ai")]
        metrics = await agent.analyze(session, messages, topic)
        assert metrics.provenance.degraded is False
        assert metrics.provenance.engine_version == "2.0"
        assert metrics.provenance.model == "mock-debate-1"
        assert metrics.session_metrics.user_messages == 1
        assert metrics.session_metrics.average_message_length == len("Lower taxes help")
        assert metrics.feedback.strengths == ["Clear statement of position"]

        prompt = provider.calls[0][-1].content
        assert topic.title in prompt
        assert "message 2" not in prompt

    @pytest.mark.asyncio
    async def test_generation_failure_propagates(self, session):
        agent = ScoringAgent()
        agent.set_llm_provider(failing_provider())
        with pytest.raises(GenerationUnavailable):
            await agent.analyze(session, [make_message(1)])

    @pytest.mark.asyncio
    async def test_failed_scoring_leaves_score_unset(self, services, session, user, provider):
        await services.sessions.send_message(session.session_id, user.user_id, "My argument")
        services.scorer.set_llm_provider(failing_provider())

        ended = await services.sessions.end(session.session_id, user.user_id)
        assert ended.status == "completed"
        assert ended.final_score is None

        services.scorer.set_llm_provider(provider)
        rescored, metrics = await services.sessions.get_analysis(session.session_id, user.user_id)
        assert metrics is not None
        assert rescored.final_score == metrics.overall_score


class TestCoachAgent:
    """Tests for CoachAgent replies and their fallbacks."""

    def coach(self, provider):
        agent = CoachAgent()
        agent.set_llm_provider(provider)
        return agent

    @pytest.mark.parametrize("level,expected", [
        ("beginner", "intermediate"),
        ("advanced", "expert"),
        ("expert", "expert"),
        ("grandmaster", "beginner"),
    ])
    def test_next_skill_level(self, level, expected):
        assert next_skill_level(level) == expected

    @pytest.mark.asyncio
    async def test_generate_feedback(self, session, topic):
        reply = {
            "summary": "Solid opening",
            "strengths": ["Clear thesis"],
            "areas_for_improvement": ["Cite sources"],
            "specific_suggestions": [{"area": "evidence", "suggestion": "Add one statistic"}],
            "practice_recommendations": ["Time your rebuttals"],
        }
        provider = replying_provider("Feedback: " + json.dumps(reply))
        metrics = make_metrics(argument_strength=82)

        feedback = await self.coach(provider).generate_feedback(
            session, topic, metrics, previous_debates=3,
            focus_areas=["evidence"], skill_level="intermediate",
        )
        assert feedback.degraded is False
        assert feedback.summary == "Solid opening"
        assert feedback.specific_suggestions[0].area == "evidence"

        prompt = provider.chat_completion.call_args.args[0][0].content
        assert topic.title in prompt
        assert "Argument Strength: 82" in prompt
        assert "3 previous completed debates" in prompt
        assert provider.chat_completion.call_args.kwargs["temperature"] == 0.4

    @pytest.mark.asyncio
    async def test_generate_feedback_fallback(self, session, topic):
        provider = replying_provider("You did well overall.")
        feedback = await self.coach(provider).generate_feedback(session, topic, make_metrics())
        assert feedback.degraded is True
        assert feedback.strengths == ["Good effort in the debate"]
        assert feedback.practice_recommendations == ["Practice regularly"]

    @pytest.mark.asyncio
    async def test_suggest_topics_skips_invalid_and_truncates(self):
        items = [
            {"title": "Universal basic income", "category": "economics"},
            {"description": "missing a title"},
            {"title": "Nuclear power", "difficulty": "hard"},
            {"title": "Space exploration"},
        ]
        provider = replying_provider(json.dumps(items))

        suggestions = await self.coach(provider).suggest_topics(
            interests=["economics"], count=2, previous_topics=["Tax policy"]
        )
        assert [s.title for s in suggestions] == ["Universal basic income", "Nuclear power"]
        assert "Tax policy" in provider.chat_completion.call_args.args[0][0].content

    @pytest.mark.asyncio
    async def test_suggest_topics_unparseable(self):
        suggestions = await self.coach(replying_provider("Try debating taxes.")).suggest_topics()
        assert suggestions == []

    @pytest.mark.asyncio
    async def test_improve_argument(self):
        reply = {
            "improved_argument": "Lower taxes raise investment, as the 2017 data shows.",
            "suggestions": [{"type": "evidence", "description": "Cite the data"}],
            "reasoning": "Added support",
        }
        provider = replying_provider(json.dumps(reply))

        improvement = await self.coach(provider).improve_argument(
            "Lower taxes are good", "Tax policy", side="pro", focus_areas=["evidence"]
        )
        assert improvement.degraded is False
        assert improvement.suggestions[0].type == "evidence"
        assert provider.chat_completion.call_args.args[0][-1].content == "Lower taxes are good"

    @pytest.mark.asyncio
    async def test_improve_argument_fallback_keeps_reply_text(self):
        provider = replying_provider("  Lower taxes leave families more to invest.  ")
        improvement = await self.coach(provider).improve_argument("Lower taxes are good", "Tax policy")
        assert improvement.degraded is True
        assert improvement.improved_argument == "Lower taxes leave families more to invest."
        assert improvement.reasoning == "Improvement suggestions generated"

    @pytest.mark.asyncio
    async def test_validate_evidence(self):
        reply = {
            "validation": [{
                "evidence": {"source": "IMF", "description": "2019 growth report"},
                "is_valid": True,
            }],
            "suggestions": [
                {"source": "OECD", "description": "Tax revenue data", "relevance": 8, "credibility": 9}
            ],
        }
        provider = replying_provider(json.dumps(reply))
        existing = [EvidenceItem(source="IMF", description="2019 growth report")]

        validation = await self.coach(provider).validate_evidence(
            "Lower taxes are good", "Tax policy", existing_evidence=existing
        )
        assert validation.validation[0].is_valid is True
        assert validation.suggestions[0].credibility == 9
        assert "2019 growth report" in provider.chat_completion.call_args.args[0][0].content

    @pytest.mark.asyncio
    async def test_validate_evidence_out_of_range_degrades(self):
        reply = {"suggestions": [{"source": "Blog", "description": "Opinion", "relevance": 42}]}
        validation = await self.coach(replying_provider(json.dumps(reply))).validate_evidence(
            "Lower taxes are good", "Tax policy"
        )
        assert validation.degraded is True
        assert validation.suggestions == []

    @pytest.mark.asyncio
    async def test_learning_path_fallback_moves_up_one_level(self):
        path = await self.coach(replying_provider("Keep practicing.")).learning_path(
            skill_level="advanced", total_debates=4, average_score=71.5
        )
        assert path.degraded is True
        assert path.current_level == "advanced"
        assert path.target_level == "expert"

    @pytest.mark.asyncio
    async def test_generation_failure_propagates(self):
        with pytest.raises(GenerationUnavailable):
            await self.coach(failing_provider()).improve_argument("Lower taxes are good", "Tax policy")


class TestDebateOrchestrator:
    """Tests for DebateOrchestrator."""

    @pytest.mark.asyncio
    async def test_run_ai_turn(self, services, session, user):
        await services.sessions.send_message(session.session_id, user.user_id, "Taxes stifle growth")

        reply = await services.orchestrator.run_ai_turn(session.session_id)
        assert reply.turn_number == 2
        assert reply.sender_type == "ai"
        assert '"Taxes stifle growth"' in reply.content
        assert reply.ai_response.response_kind == "question"
        assert reply.message_type == "argument"

        stored = await services.store.get_session(session.session_id)
        assert stored.message_count.ai == 1

    @pytest.mark.asyncio
    async def test_run_ai_turn_without_messages(self, services, session):
        with pytest.raises(ValidationError):
            await services.orchestrator.run_ai_turn(session.session_id)

    @pytest.mark.asyncio
    async def test_run_ai_turn_twice_conflicts(self, services, session, user):
        await services.sessions.send_message(session.session_id, user.user_id, "First point")
        await services.orchestrator.run_ai_turn(session.session_id)
        with pytest.raises(ConflictError):
            await services.orchestrator.run_ai_turn(session.session_id)

    @pytest.mark.asyncio
    async def test_run_ai_turn_on_ended_session(self, services, session, user):
        await services.sessions.send_message(session.session_id, user.user_id, "First point")
        await services.sessions.end(session.session_id, user.user_id, reason="abandoned")
        with pytest.raises(InvalidTransition):
            await services.orchestrator.run_ai_turn(session.session_id)

    @pytest.mark.asyncio
    async def test_scheduled_turns_alternate(self, services, session, user):
        for text in ("First point", "Second point"):
            await services.sessions.send_message(session.session_id, user.user_id, text)
            task = services.orchestrator.schedule_ai_turn(session.session_id)
            await task

        messages = await services.ledger.all(session.session_id)
        assert [m.sender_type for m in messages] == ["user", "ai", "user", "ai"]
        assert services.orchestrator.pending(session.session_id) is None

    @pytest.mark.asyncio
    async def test_scheduled_turns_are_chained(self, services, session, user):
        await services.sessions.send_message(session.session_id, user.user_id, "First point")
        first = services.orchestrator.schedule_ai_turn(session.session_id)
        await services.sessions.send_message(session.session_id, user.user_id, "Second point")
        second = services.orchestrator.schedule_ai_turn(session.session_id)

        answered, skipped = await asyncio.gather(first, second)
        assert answered.turn_number == 3
        assert skipped is None

        messages = await services.ledger.all(session.session_id)
        assert [m.turn_number for m in messages] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_message_sent_during_generation_is_answered(self, services, session, user):
        release = asyncio.Event()
        seen = []

        async def reply(messages, **kwargs):
            seen.append(messages[-1].content)
            if len(seen) == 1:
                await release.wait()
            return LLMResponse(content=f"In reply to {messages[-1].content}", model="test-model")

        provider = AsyncMock(spec=LLMProvider)
        provider.model = "test-model"
        provider.chat_completion.side_effect = reply
        opponent = OpponentAgent(enrichment_enabled=False)
        opponent.set_llm_provider(provider)
        orchestrator = DebateOrchestrator(services.sessions, services.ledger, opponent)

        await services.sessions.send_message(session.session_id, user.user_id, "First point")
        first = orchestrator.schedule_ai_turn(session.session_id)
        for _ in range(200):
            if seen:
                break
            await asyncio.sleep(0.01)
        assert seen == ["First point"]

        second_point = await services.sessions.send_message(
            session.session_id, user.user_id, "Second point"
        )
        second = orchestrator.schedule_ai_turn(session.session_id)
        release.set()

        answered, skipped = await asyncio.gather(first, second)
        assert skipped is None
        assert seen == ["First point", "Second point"]
        assert answered.turn_number == 3
        assert answered.reply_to == second_point.message_id
        assert answered.content == "In reply to Second point"

        messages = await services.ledger.all(session.session_id)
        assert [(m.turn_number, m.sender_type) for m in messages] == [
            (1, "user"), (2, "user"), (3, "ai")
        ]

    @pytest.mark.asyncio
    async def test_superseded_reply_gives_up_after_max_attempts(self, services, session, user):
        async def reply(messages, **kwargs):
            await services.sessions.send_message(session.session_id, user.user_id, "Another point")
            return LLMResponse(content="Too late", model="test-model")

        provider = AsyncMock(spec=LLMProvider)
        provider.model = "test-model"
        provider.chat_completion.side_effect = reply
        opponent = OpponentAgent(enrichment_enabled=False)
        opponent.set_llm_provider(provider)
        orchestrator = DebateOrchestrator(
            services.sessions, services.ledger, opponent, max_attempts=2
        )

        await services.sessions.send_message(session.session_id, user.user_id, "First point")
        with pytest.raises(ConflictError):
            await orchestrator.run_ai_turn(session.session_id)
        assert provider.chat_completion.await_count == 2
        messages = await services.ledger.all(session.session_id)
        assert all(m.sender_type == "user" for m in messages)

    @pytest.mark.asyncio
    async def test_append_ai_message_checks_reply_to(self, services, session, user):
        first = await services.sessions.send_message(session.session_id, user.user_id, "First point")
        await services.sessions.send_message(session.session_id, user.user_id, "Second point")
        with pytest.raises(ReplySuperseded):
            await services.sessions.append_ai_message(
                session.session_id, "Stale reply", reply_to=first.message_id
            )
        assert len(await services.ledger.all(session.session_id)) == 2

    @pytest.mark.asyncio
    async def test_scheduled_failure_reported_to_origin(self, services, session, user):
        await services.sessions.send_message(session.session_id, user.user_id, "First point")
        opponent = OpponentAgent()
        opponent.set_llm_provider(failing_provider())
        channel = AsyncMock()
        orchestrator = DebateOrchestrator(services.sessions, services.ledger, opponent, channel=channel)
        origin = object()

        result = await orchestrator.schedule_ai_turn(session.session_id, origin=origin)
        assert result is None

        channel.send_error.assert_awaited_once()
        sent_to, error = channel.send_error.call_args.args
        assert sent_to is origin
        assert error.kind == "generation_unavailable"
        assert len(await services.ledger.all(session.session_id)) == 1

    @pytest.mark.asyncio
    async def test_disabled(self, services, session):
        orchestrator = DebateOrchestrator(
            services.sessions, services.ledger, services.opponent, enabled=False
        )
        assert orchestrator.schedule_ai_turn(session.session_id) is None

    @pytest.mark.asyncio
    async def test_shutdown_cancels_pending(self, services, session, user):
        async def slow(*args, **kwargs):
            await asyncio.sleep(10)

        provider = AsyncMock(spec=LLMProvider)
        provider.chat_completion.side_effect = slow
        opponent = OpponentAgent(timeout_seconds=30)
        opponent.set_llm_provider(provider)
        orchestrator = DebateOrchestrator(services.sessions, services.ledger, opponent)

        await services.sessions.send_message(session.session_id, user.user_id, "First point")
        task = orchestrator.schedule_ai_turn(session.session_id)
        await asyncio.sleep(0)
        await orchestrator.shutdown()
        assert task.cancelled()
