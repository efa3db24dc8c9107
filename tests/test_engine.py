"""Tests for the conversation engine."""

import threading
import time

import pytest

from finance_agent.agent import ModelAPIError, ModelTransportError
from finance_agent.conversation.engine import ConversationEngine
from finance_agent.conversation.state import PROPERTY_TOPIC
from finance_agent.models.conversation import ChatRequest
from finance_agent.models.finance import RetirementParameters
from finance_agent.sample_data import default_snapshot
from finance_agent.session import SessionStore
from helpers import FakeModelClient, model, user


def request(text, original=None, conversation_id="c1", **kwargs):
    return ChatRequest(
        conversation_id=conversation_id,
        user_message=text,
        original_user_message=original if original is not None else text,
        financial_parameters=kwargs.pop("financial_parameters", default_snapshot()),
        **kwargs,
    )


@pytest.fixture
def store():
    return SessionStore(ttl_seconds=3600, max_sessions=10)


class TestConversationEngine:
    """Tests for ConversationEngine.handle()."""

    def test_turn_is_committed(self, store):
        client = FakeModelClient(["What is the property price you have in mind?"])
        engine = ConversationEngine(client, store=store)

        response = engine.handle(request("Can I afford an apartment in Geneva?"))

        assert response.response == "What is the property price you have in mind?"
        assert response.enriched_prompt is None

        session = store.get("c1")
        assert [m.role for m in session.history] == ["user", "model"]
        assert session.history[0].metadata == {
            "original_input": "Can I afford an apartment in Geneva?"
        }
        assert session.state.active_calculation == PROPERTY_TOPIC
        assert session.state.pending_inputs == ["property_value"]
        assert "apartment" in session.topics

    def test_system_instruction_sent(self, store):
        client = FakeModelClient()
        engine = ConversationEngine(client, store=store)

        engine.handle(request("How much tax will I pay this year?"))

        system, messages = client.calls[0]
        assert "Use ONLY this verified financial data" in system
        assert "tax optimization" in system
        assert messages[-1].text == "How much tax will I pay this year?"

    def test_failed_call_commits_nothing(self, store):
        client = FakeModelClient(error=ModelAPIError("Gemini API error", status_code=500))
        engine = ConversationEngine(client, store=store)

        with pytest.raises(ModelAPIError):
            engine.handle(request("How much tax will I pay this year?"))

        assert "c1" not in store

    def test_uses_injected_empty_store(self, store):
        engine = ConversationEngine(FakeModelClient(), store=store)
        assert engine.store is store

        engine.handle(request("How much tax will I pay this year?"))

        assert len(store) == 1

    def test_failed_turns_leave_no_locks(self, store):
        client = FakeModelClient(error=ModelTransportError("Could not reach the model service"))
        engine = ConversationEngine(client, store=store)

        for i in range(100):
            with pytest.raises(ModelTransportError):
                engine.handle(request("How much tax will I pay?", conversation_id=f"c{i}"))

        assert len(store) == 0
        assert store.active_locks == 0

    def test_failed_call_keeps_previous_turn(self, store):
        client = FakeModelClient(["Your tax is CHF 18'040."])
        engine = ConversationEngine(client, store=store)
        engine.handle(request("How much tax will I pay this year?"))
        before = store.get("c1")

        client.error = ModelTransportError("Request timed out")
        with pytest.raises(ModelTransportError):
            engine.handle(request("And how much if I earn 150k CHF more?"))

        after = store.get("c1")
        assert after.history == before.history
        assert after.state == before.state
        assert after.topics == before.topics

    def test_confirmation_merged_with_pending_calculation(self, store):
        client = FakeModelClient([
            "Would you like me to calculate the property affordability?",
            "Here is the calculation.",
        ])
        engine = ConversationEngine(client, store=store)
        engine.handle(request("Can I afford an apartment?"))

        enriched = (
            'Yes, regarding your question '
            '"Would you like me to calculate the property affordability?"'
        )
        response = engine.handle(request(enriched, original="yes"))

        expected = (
            "Yes, please property affordability calculation as you suggested "
            "in your previous message."
        )
        system, messages = client.calls[-1]
        assert messages[-1].text == expected
        assert messages[-1].metadata == {"original_input": "yes"}
        assert response.enriched_prompt == expected
        assert (
            'The user\'s message "yes" is responding to your question: '
            '"Would you like me to calculate the property affordability?"'
        ) in system

    def test_value_merged_with_expected_input(self, store):
        client = FakeModelClient([
            "What is the property price you have in mind?",
            "Thanks.",
        ])
        engine = ConversationEngine(client, store=store)
        engine.handle(request("I'd like to buy an apartment in Lausanne"))

        engine.handle(request("900k", original="900k"))

        system, messages = client.calls[-1]
        assert messages[-1].text == (
            "For the property affordability calculation you asked about, the value is 900k"
        )
        assert "The user just provided a value of 900k" in system

        state = store.get("c1").state
        assert state.last_property_value == 900_000
        assert state.pending_inputs == []

    def test_short_reply_does_not_push_topics(self, store):
        client = FakeModelClient(["Noted."])
        engine = ConversationEngine(client, store=store)
        engine.handle(request("Tell me about my budget please"))
        topics = store.get("c1").topics

        engine.handle(request("tax rate", original="tax rate"))

        assert store.get("c1").topics[: len(topics)] == topics

    def test_closing_reply_returns_to_idle(self, store):
        client = FakeModelClient(["In summary, you will pay CHF 18'040 in tax."])
        engine = ConversationEngine(client, store=store)

        engine.handle(request("How much tax will I pay this year?"))

        assert store.get("c1").state.is_idle

    def test_retirement_parameters_applied(self, store):
        client = FakeModelClient()
        engine = ConversationEngine(client, store=store)
        snapshot = default_snapshot(
            retirement=RetirementParameters(current_age=35, target_retirement_age=60)
        )

        engine.handle(request("How should I plan my retirement?", financial_parameters=snapshot))

        assert store.get("c1").state.retirement.timeframe == 25
        assert "- Years until retirement: 25 years" in client.calls[0][0]

    def test_history_trimmed(self, store):
        client = FakeModelClient()
        engine = ConversationEngine(client, store=store, max_history=4)

        for text in ["First question about taxes", "Second question here", "Third question now"]:
            engine.handle(request(text))

        history = store.get("c1").history
        assert len(history) == 4
        assert history[0].text == "First question about taxes"
        assert history[-2].text == "Third question now"

    def test_history_seeded_from_request(self, store):
        client = FakeModelClient()
        engine = ConversationEngine(client, store=store)

        engine.handle(request(
            "What about my retirement savings?",
            previous_messages=[user("How much tax do I pay?"), model("About CHF 18'040.")],
        ))

        _, messages = client.calls[0]
        assert [m.text for m in messages] == [
            "How much tax do I pay?",
            "About CHF 18'040.",
            "What about my retirement savings?",
        ]

    def test_conversations_are_independent(self, store):
        client = FakeModelClient()
        engine = ConversationEngine(client, store=store)

        engine.handle(request("How much tax will I pay this year?", conversation_id="a"))
        engine.handle(request("Can I afford an apartment in Zurich?", conversation_id="b"))

        assert store.get("a").state.active_calculation == "tax optimization"
        assert store.get("b").state.active_calculation == PROPERTY_TOPIC

    def test_turns_for_one_conversation_are_serialised(self, store):
        class SlowClient(FakeModelClient):
            def __init__(self):
                super().__init__(["ok"])
                self.active = 0
                self.max_active = 0
                self._counter = threading.Lock()

            def generate(self, system, messages):
                with self._counter:
                    self.active += 1
                    self.max_active = max(self.max_active, self.active)
                time.sleep(0.05)
                with self._counter:
                    self.active -= 1
                return super().generate(system, messages)

        client = SlowClient()
        engine = ConversationEngine(client, store=store)
        threads = [
            threading.Thread(target=engine.handle, args=(request(f"Question number {i} on tax"),))
            for i in range(3)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert client.max_active == 1
        assert len(store.get("c1").history) == 6

    def test_reset(self, store):
        engine = ConversationEngine(FakeModelClient(), store=store)
        engine.handle(request("How much tax will I pay this year?"))

        engine.reset("c1")

        assert "c1" not in store
