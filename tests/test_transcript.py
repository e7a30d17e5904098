"""
Tests for transcript accumulation and completion detection.
"""
from voice_pos.transcript import (
    TranscriptAccumulator,
    fenced_block_closed,
    json_block_complete,
)

ORDER_JSON = '{"items": [{"name": "Teh ais", "price": 3.0, "quantity": 2}]}'


class TestCompletionPredicates:

    def test_fenced_block_closed_requires_both_fences(self):
        assert not fenced_block_closed("```json {")
        assert not fenced_block_closed('{"items": []}\n```')
        assert fenced_block_closed('```json\n{"items": []}\n```')

    def test_json_block_complete_rejects_unparsable_block(self):
        assert not json_block_complete('```json\n{"items": [\n}\n```')
        assert json_block_complete(f"```json\n{ORDER_JSON}\n```")

    def test_json_block_complete_without_block(self):
        assert not json_block_complete("two teh ais please")


class TestTranscriptAccumulator:

    def test_fragments_are_joined_with_spaces(self):
        acc = TranscriptAccumulator()
        acc.append("  saya nak ")
        acc.append("dua nasi lemak")
        assert acc.text == "saya nak dua nasi lemak"

    def test_blank_fragments_ignored(self):
        acc = TranscriptAccumulator()
        signal = acc.append("   ")
        assert not signal.ready
        assert acc.is_empty

    def test_ready_when_block_closes(self):
        """A block split across fragments signals exactly once, on the closing fragment."""
        acc = TranscriptAccumulator()
        assert not acc.append("Here is your order:").ready
        assert not acc.append("```json").ready

        signal = acc.append(ORDER_JSON + "\n```")

        assert signal.ready
        assert signal.generation == 0
        assert signal.text.startswith("Here is your order: ```json")
        assert ORDER_JSON in signal.text

    def test_ready_resets_buffer(self):
        """The same content can never produce a second ready signal."""
        acc = TranscriptAccumulator()
        acc.append(f"```json\n{ORDER_JSON}\n```")

        assert acc.is_empty
        assert acc.generation == 1
        assert not acc.append("thank you").ready

    def test_clear_bumps_generation(self):
        acc = TranscriptAccumulator()
        acc.append("```json")
        acc.clear()

        assert acc.is_empty
        assert acc.generation == 1
        # The half-finished block is gone; its closing half alone is not an order
        assert not acc.append(ORDER_JSON + "\n```").ready

    def test_clear_on_empty_buffer_still_bumps_generation(self):
        acc = TranscriptAccumulator()
        acc.clear()
        acc.clear()
        assert acc.generation == 2

    def test_custom_predicate(self):
        acc = TranscriptAccumulator(is_complete=json_block_complete)
        assert not acc.append('```json\n{"items": [\n}\n```').ready
        acc.clear()
        assert acc.append(f"```json\n{ORDER_JSON}\n```").ready
