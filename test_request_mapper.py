import pytest

from config import Settings
from errors import ClientInputError
from request_mapper import (
    build_vertex_payload,
    content_to_parts,
    map_messages_to_contents,
    map_request_to_provider,
    parse_generation_request,
)

TEST_PAYLOAD = {
    "messages": [
        {"role": "system", "content": "Be terse"},
        {"role": "user", "content": "Hi"},
    ]
}


@pytest.fixture
def settings():
    return Settings(groq_api_key="gsk_test", vertex_model="gemini-1.5-flash")


## --- Message mapping ---


def test_system_message_becomes_instruction_parts():
    """System text is split out of contents into the instruction parts."""
    contents, system_parts = map_messages_to_contents(TEST_PAYLOAD["messages"])

    assert contents == [{"role": "user", "parts": [{"text": "Hi"}]}]
    assert system_parts == [{"text": "Be terse"}]


def test_only_system_messages_yield_no_contents():
    contents, system_parts = map_messages_to_contents(
        [
            {"role": "system", "content": "one"},
            {"role": "system", "content": ["two", {"type": "text", "text": "three"}]},
        ]
    )

    assert contents == []
    # Flattened in order, not wrapped per message
    assert system_parts == [{"text": "one"}, {"text": "two"}, {"text": "three"}]


def test_assistant_maps_to_model_and_other_roles_to_user():
    contents, _ = map_messages_to_contents(
        [
            {"role": "user", "content": "a"},
            {"role": "assistant", "content": "b"},
            {"role": "tool", "content": "c"},
            {"role": "Assistant", "content": "d"},
        ]
    )

    assert [c["role"] for c in contents] == ["user", "model", "user", "model"]
    assert [c["parts"][0]["text"] for c in contents] == ["a", "b", "c", "d"]


def test_messages_without_role_are_discarded():
    contents, system_parts = map_messages_to_contents(
        [
            {"content": "no role"},
            {"role": "", "content": "empty role"},
            "not a message",
            {"role": "user", "content": "kept"},
        ]
    )

    assert contents == [{"role": "user", "parts": [{"text": "kept"}]}]
    assert system_parts == []


## --- Content normalization ---


def test_null_content_yields_one_empty_part():
    assert content_to_parts(None) == [{"text": ""}]

    contents, _ = map_messages_to_contents([{"role": "user", "content": None}])
    assert contents == [{"role": "user", "parts": [{"text": ""}]}]


def test_missing_content_yields_one_empty_part():
    contents, _ = map_messages_to_contents([{"role": "assistant"}])
    assert contents == [{"role": "model", "parts": [{"text": ""}]}]


def test_string_and_single_text_item_normalize_identically():
    assert content_to_parts("hello") == [{"text": "hello"}]
    assert content_to_parts([{"type": "text", "text": "hello"}]) == [{"text": "hello"}]


def test_mixed_list_keeps_order_and_drops_unrecognized_entries():
    """Unrecognized entries vanish without shifting the survivors."""
    parts = content_to_parts(
        [
            "first",
            {"type": "image_url", "image_url": {"url": "https://example.com/x.png"}},
            {"type": "text", "text": "second"},
            42,
            {"content": "third"},
            {"type": "text", "text": 7},
        ]
    )

    assert parts == [{"text": "first"}, {"text": "second"}, {"text": "third"}]


def test_list_with_nothing_usable_degrades_to_empty_part():
    assert content_to_parts([]) == [{"text": ""}]
    assert content_to_parts([{"type": "image_url"}, None]) == [{"text": ""}]


def test_object_content_uses_text_then_content_field():
    assert content_to_parts({"text": "from text"}) == [{"text": "from text"}]
    assert content_to_parts({"content": "from content"}) == [{"text": "from content"}]
    assert content_to_parts({"text": 1, "content": "fallback"}) == [{"text": "fallback"}]


def test_object_content_without_text_degrades_to_empty_part():
    assert content_to_parts({"foo": "bar"}) == [{"text": ""}]


def test_scalar_content_uses_string_form():
    assert content_to_parts(42) == [{"text": "42"}]
    assert content_to_parts(1.5) == [{"text": "1.5"}]


## --- Request parsing & payload building ---


@pytest.mark.parametrize(
    "body",
    [None, {}, {"messages": None}, {"messages": "hi"}, {"messages": []}, ["not", "a", "dict"]],
)
def test_parse_rejects_missing_or_empty_messages(body):
    with pytest.raises(ClientInputError) as exc_info:
        parse_generation_request(body)
    assert exc_info.value.status_code == 400
    assert "messages array is required" in exc_info.value.message


def test_parse_applies_generation_defaults():
    gen_request = parse_generation_request(TEST_PAYLOAD)

    assert gen_request.temperature == 0.7
    assert gen_request.max_tokens == 180
    assert gen_request.top_p == 0.9
    assert gen_request.stream is False
    assert gen_request.model is None


def test_build_vertex_payload_shape():
    gen_request = parse_generation_request(
        dict(TEST_PAYLOAD, temperature=0.2, max_tokens=64, top_p=0.5)
    )
    payload = build_vertex_payload(gen_request)

    assert payload == {
        "contents": [{"role": "user", "parts": [{"text": "Hi"}]}],
        "systemInstruction": {"role": "system", "parts": [{"text": "Be terse"}]},
        "generationConfig": {"temperature": 0.2, "topP": 0.5, "maxOutputTokens": 64},
    }


def test_build_vertex_payload_omits_empty_system_instruction():
    gen_request = parse_generation_request({"messages": [{"role": "user", "content": "Hi"}]})
    payload = build_vertex_payload(gen_request)

    assert "systemInstruction" not in payload


def test_build_vertex_payload_rejects_system_only_conversation():
    gen_request = parse_generation_request(
        {"messages": [{"role": "system", "content": "Be terse"}]}
    )
    with pytest.raises(ClientInputError):
        build_vertex_payload(gen_request)


def test_map_request_for_groq_forwards_messages_untouched(settings):
    messages = [{"role": "user", "content": [{"type": "text", "text": "hi"}]}]
    params = map_request_to_provider("groq", {"messages": messages, "stream": True}, settings)

    assert params == {
        "model_name": "llama-3.1-8b-instant",
        "messages_list": messages,
        "temperature": 0.7,
        "max_tokens": 180,
        "top_p": 0.9,
        "stream": True,
    }


def test_map_request_for_vertex_rejects_streaming(settings):
    with pytest.raises(ClientInputError) as exc_info:
        map_request_to_provider("vertex", dict(TEST_PAYLOAD, stream=True), settings)
    assert "stream" in exc_info.value.message


def test_map_request_for_vertex_strips_models_prefix(settings):
    params = map_request_to_provider(
        "vertex", dict(TEST_PAYLOAD, model="models/gemini-1.5-pro"), settings
    )

    assert params["model_name"] == "gemini-1.5-pro"
    assert params["payload"]["contents"] == [{"role": "user", "parts": [{"text": "Hi"}]}]


def test_map_request_for_vertex_uses_default_model(settings):
    params = map_request_to_provider("vertex", TEST_PAYLOAD, settings)
    assert params["model_name"] == "gemini-1.5-flash"


def test_map_request_unknown_provider(settings):
    with pytest.raises(ValueError):
        map_request_to_provider("ambient", TEST_PAYLOAD, settings)
