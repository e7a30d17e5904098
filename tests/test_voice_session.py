"""
Tests for the voice session: model frames in, ADD_ITEM messages out.
"""
import asyncio
import json

from voice_pos.transcript import CompletionSignal
from voice_pos.voice_session import ExtractionResult, VoiceSession


MENU = "- Nasi lemak: RM5.50\n- Teh ais: RM3.00"
ORDER_JSON = json.dumps({"items": [
    {"name": "Teh ais", "price": 3.0, "quantity": 2},
    {"name": "Nasi lemak", "price": 5.5, "quantity": 1},
]})


class RecordingEndpoint:
    """Stand-in for RelayEndpoint that records outgoing messages."""

    def __init__(self, connected=True, on_send=None):
        self.connected = connected
        self.on_send = on_send
        self.sent = []

    async def send(self, message):
        self.sent.append(message)
        if self.on_send is not None:
            self.on_send()
        return True


def _model_text(text):
    return {"serverContent": {"modelTurn": {"parts": [{"text": text}]}}}


def _complete_block():
    return f"```json\n{ORDER_JSON}\n```"


class TestModelMessages:

    def test_setup_complete_marks_ready(self):
        session = VoiceSession(RecordingEndpoint())
        asyncio.run(session.handle_model_message({"setupComplete": {}}))
        assert session.model_ready

    def test_block_split_across_frames_relays_each_item(self):
        endpoint = RecordingEndpoint()
        session = VoiceSession(endpoint, instructions=MENU)

        async def scenario():
            counts = []
            counts.append(await session.handle_model_message(_model_text("Sure, here is the order:")))
            counts.append(await session.handle_model_message(_model_text("```json")))
            counts.append(await session.handle_model_message(_model_text(ORDER_JSON + "\n```")))
            return counts

        assert asyncio.run(scenario()) == [0, 0, 2]
        assert [(m.type, m.data) for m in endpoint.sent] == [
            ("ADD_ITEM", {"name": "Teh ais", "price": 3.0, "quantity": 2}),
            ("ADD_ITEM", {"name": "Nasi lemak", "price": 5.5, "quantity": 1}),
        ]
        assert session.accumulator.is_empty

    def test_input_transcription_is_accumulated(self):
        session = VoiceSession(RecordingEndpoint(), instructions=MENU)
        message = {"serverContent": {
            "inputTranscription": {"text": "saya nak dua"},
            "modelTurn": {"parts": [{"text": "Noted."}]},
        }}
        asyncio.run(session.handle_model_message(message))
        assert session.accumulator.text == "saya nak dua Noted."

    def test_frames_without_text_ignored(self):
        session = VoiceSession(RecordingEndpoint())
        sent = asyncio.run(session.handle_model_message({"serverContent": {"turnComplete": True}}))
        assert sent == 0
        assert session.accumulator.is_empty


class TestCancellation:

    def test_result_from_cleared_transcript_is_discarded(self):
        endpoint = RecordingEndpoint()
        session = VoiceSession(endpoint)

        signal = session.accumulator.append(_complete_block())
        result = session.extract(signal)
        session.clear_transcript()

        assert session.is_stale(result)
        assert asyncio.run(session.apply_extraction(result)) == 0
        assert endpoint.sent == []

    def test_clear_during_send_stops_remaining_items(self):
        session = None
        endpoint = RecordingEndpoint(on_send=lambda: session.clear_transcript())
        session = VoiceSession(endpoint)

        sent = asyncio.run(session.append_fragment(_complete_block()))

        assert sent == 1
        assert [m.data["name"] for m in endpoint.sent] == ["Teh ais"]

    def test_new_order_after_clear_is_sent(self):
        endpoint = RecordingEndpoint()
        session = VoiceSession(endpoint)
        session.accumulator.append("```json")
        session.clear_transcript()

        sent = asyncio.run(session.append_fragment(_complete_block()))
        assert sent == 2

    def test_not_connected_drops_items(self):
        endpoint = RecordingEndpoint(connected=False)
        session = VoiceSession(endpoint)
        sent = asyncio.run(session.append_fragment(_complete_block()))
        assert sent == 0
        assert endpoint.sent == []

    def test_empty_result_sends_nothing(self):
        endpoint = RecordingEndpoint()
        session = VoiceSession(endpoint)
        assert asyncio.run(session.apply_extraction(ExtractionResult(generation=0, items=()))) == 0


class TestInstructions:

    def test_vocabulary_follows_instructions(self):
        session = VoiceSession(RecordingEndpoint(), instructions=MENU)
        assert list(session.vocabulary) == ["nasi lemak", "teh ais"]

        session.update_instructions("- Kopi: RM2.50")
        assert list(session.vocabulary) == ["kopi"]

    def test_free_text_uses_vocabulary(self):
        session = VoiceSession(RecordingEndpoint(), instructions=MENU)
        result = session.extract(CompletionSignal(ready=True, generation=0, text="dua nasi lemak"))
        assert [(i.name, i.quantity) for i in result.items] == [("Nasi lemak", 2)]

    def test_setup_message_carries_instructions(self):
        session = VoiceSession(RecordingEndpoint(), instructions=MENU, model="models/test")
        setup = session.build_setup_message()["setup"]
        assert setup["model"] == "models/test"
        assert setup["systemInstruction"]["parts"][0]["text"].startswith(MENU)

    def test_changed_instructions_need_reconnect_only_when_live(self):
        session = VoiceSession(RecordingEndpoint(), instructions=MENU)
        assert not session.update_instructions("- Kopi: RM2.50")

        session.build_setup_message()
        session.model_ready = True
        assert not session.update_instructions("- Kopi: RM2.50")
        assert session.update_instructions("- Teh: RM2.00")
