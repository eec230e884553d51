"""
Unit tests for extract_text: each known result shape, priority order, and the dump fallback.
"""

import json
from types import SimpleNamespace

import pytest
from pydantic import BaseModel

from agent_relay.core.config import MAX_DUMP_CHARS
from agent_relay.services.extractor import extract_text


class TestEmptyAndStrings:
    """Empty input and plain string input."""

    @pytest.mark.parametrize("value", [None, "", {}, []])
    def test_empty_returns_empty(self, value) -> None:
        assert extract_text(value) == ""

    def test_plain_string_is_trimmed(self) -> None:
        assert extract_text("  hello world \n") == "hello world"

    def test_string_mentioning_state_without_brace_is_plain(self) -> None:
        text = 'The "state" of things'
        assert extract_text(text) == text

    def test_serialized_envelope_is_parsed(self) -> None:
        raw = json.dumps({"state": {"finalOutput": "  Parsed answer  "}})
        assert extract_text("  " + raw) == "Parsed answer"

    def test_malformed_envelope_returns_trimmed_string(self) -> None:
        raw = '  {"state": oops, not json  '
        assert extract_text(raw) == '{"state": oops, not json'

    def test_json_without_state_key_is_not_parsed(self) -> None:
        raw = '{"output_text": "x"}'
        assert extract_text(raw) == raw

    def test_deeply_nested_envelope_returns_trimmed_string(self) -> None:
        raw = '{"state": ' + "[" * 200000
        assert extract_text("  " + raw + "  ") == raw


class TestScalarFields:
    """output_text and finalOutput."""

    def test_output_text(self) -> None:
        assert extract_text({"output_text": "  Hello  "}) == "Hello"

    def test_output_text_wins_over_everything(self) -> None:
        result = {
            "output_text": "A",
            "finalOutput": "B",
            "content": [{"text": "C"}],
            "state": {"finalOutput": "D"},
        }
        assert extract_text(result) == "A"

    def test_blank_output_text_falls_through_to_final_output(self) -> None:
        assert extract_text({"output_text": "   ", "finalOutput": " B "}) == "B"

    def test_snake_case_final_output(self) -> None:
        assert extract_text({"final_output": "from run result"}) == "from run result"

    def test_non_string_output_text_is_ignored(self) -> None:
        assert extract_text({"output_text": 42, "finalOutput": "B"}) == "B"

    def test_sdk_object_attributes(self) -> None:
        response = SimpleNamespace(output_text="  from sdk  ", output=[])
        assert extract_text(response) == "from sdk"


class TestContentBlocks:
    """Top-level content arrays."""

    def test_joins_texts_and_drops_empty(self) -> None:
        result = {"content": [{"text": "A"}, {"text": ""}, {"output_text": "B"}]}
        assert extract_text(result) == "A\n\nB"

    def test_text_preferred_over_output_text_in_block(self) -> None:
        assert extract_text({"content": [{"text": "T", "output_text": "O"}]}) == "T"

    def test_content_beats_state(self) -> None:
        result = {"content": [{"text": "C"}], "state": {"finalOutput": "D"}}
        assert extract_text(result) == "C"

    def test_string_blocks(self) -> None:
        assert extract_text({"content": ["one", " ", "two"]}) == "one\n\ntwo"


class TestStateEnvelope:
    """state.finalOutput, state.newItems, state.modelResponses."""

    def test_state_final_output(self) -> None:
        assert extract_text({"state": {"finalOutput": " done "}}) == "done"

    def test_new_items_joined_in_order(self) -> None:
        result = {
            "state": {
                "newItems": [
                    {"content": [{"text": "first"}]},
                    {"content": [{"text": ""}, {"text": "second"}]},
                ]
            }
        }
        assert extract_text(result) == "first\n\nsecond"

    def test_new_items_raw_item_content(self) -> None:
        result = {
            "state": {
                "newItems": [
                    {"type": "message_output_item", "rawItem": {"content": [{"type": "output_text", "text": "raw"}]}},
                ]
            }
        }
        assert extract_text(result) == "raw"

    def test_new_items_win_over_model_responses(self) -> None:
        result = {
            "state": {
                "newItems": [{"content": [{"text": "item"}]}],
                "modelResponses": [{"content": [{"text": "model"}]}],
            }
        }
        assert extract_text(result) == "item"

    def test_model_responses_content(self) -> None:
        result = {"state": {"modelResponses": [{"content": [{"text": "m1"}]}, {"content": [{"text": "m2"}]}]}}
        assert extract_text(result) == "m1\n\nm2"

    def test_model_responses_output_items(self) -> None:
        result = {
            "state": {
                "modelResponses": [
                    {"output": [{"type": "message", "content": [{"type": "output_text", "text": "nested"}]}]}
                ]
            }
        }
        assert extract_text(result) == "nested"

    def test_new_items_without_state_wrapper(self) -> None:
        assert extract_text({"newItems": [{"content": [{"text": "bare"}]}]}) == "bare"

    def test_state_envelope_from_string(self) -> None:
        raw = json.dumps({"state": {"newItems": [{"content": [{"text": "a"}]}, {"content": [{"text": "b"}]}]}})
        assert extract_text(raw) == "a\n\nb"


class TestNestedOutput:
    """Final/current output that is itself an object."""

    def test_final_output_object(self) -> None:
        assert extract_text({"finalOutput": {"output_text": " deep "}}) == "deep"

    def test_state_current_output_object(self) -> None:
        result = {"state": {"currentOutput": {"content": [{"text": "x"}, {"text": "y"}]}}}
        assert extract_text(result) == "x\n\ny"


class TestFallbackDump:
    """No known shape: bounded JSON dump."""

    def test_unknown_shape_is_pretty_json(self) -> None:
        result = {"id": "resp_1", "status": "completed"}
        assert extract_text(result) == json.dumps(result, indent=2, ensure_ascii=False)

    def test_dump_is_truncated(self) -> None:
        result = {"blob": "x" * (MAX_DUMP_CHARS * 2)}
        out = extract_text(result)
        assert len(out) == MAX_DUMP_CHARS
        assert out.startswith('{\n  "blob": "xxx')

    def test_pydantic_model_is_dumped(self) -> None:
        class Payload(BaseModel):
            status: str = "completed"

        assert extract_text(Payload()) == '{\n  "status": "completed"\n}'

    def test_unserializable_falls_back_to_str(self) -> None:
        circular: dict = {"big": "y" * (MAX_DUMP_CHARS * 2)}
        circular["self"] = circular
        out = extract_text(circular)
        assert out.startswith("{'big': 'yyy")
        assert len(out) <= MAX_DUMP_CHARS

    def test_never_raises_on_hostile_object(self) -> None:
        class Hostile:
            @property
            def output_text(self):
                raise RuntimeError("boom")

            def __str__(self) -> str:
                return "hostile"

        assert extract_text(Hostile()) == "hostile"
