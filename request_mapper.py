# request_mapper.py
from dataclasses import dataclass
from functools import singledispatch
from typing import Any, List, Optional, Tuple

from config import (
    DEFAULT_MAX_TOKENS,
    DEFAULT_TEMPERATURE,
    DEFAULT_TOP_P,
    PROVIDER_GROQ,
    PROVIDER_VERTEX,
    Settings,
)
from errors import ClientInputError


@dataclass(frozen=True)
class GenerationRequest:
    messages: list
    model: Optional[str] = None
    temperature: Any = DEFAULT_TEMPERATURE
    max_tokens: Any = DEFAULT_MAX_TOKENS
    top_p: Any = DEFAULT_TOP_P
    stream: Any = False


def parse_generation_request(request_data) -> GenerationRequest:
    """
    Validates the inbound body. Absent generation fields take their defaults;
    an explicit null is kept as null and forwarded.
    """
    if not isinstance(request_data, dict):
        request_data = {}
    messages = request_data.get("messages")
    if not isinstance(messages, list) or not messages:
        raise ClientInputError("messages array is required")
    return GenerationRequest(
        messages=messages,
        model=request_data.get("model"),
        temperature=request_data.get("temperature", DEFAULT_TEMPERATURE),
        max_tokens=request_data.get("max_tokens", DEFAULT_MAX_TOKENS),
        top_p=request_data.get("top_p", DEFAULT_TOP_P),
        stream=request_data.get("stream", False),
    )


# --- Content normalization: one converter per content shape ---


def _text_part(text: str) -> dict:
    return {"text": text}


def _list_entry_to_part(entry) -> Optional[dict]:
    if isinstance(entry, str):
        return _text_part(entry)
    if isinstance(entry, dict):
        if entry.get("type") == "text" and isinstance(entry.get("text"), str):
            return _text_part(entry["text"])
        if isinstance(entry.get("content"), str):
            return _text_part(entry["content"])
    # Images, tool payloads and other shapes have no text form here
    return None


@singledispatch
def content_to_parts(content) -> List[dict]:
    """Scalars (numbers, booleans, ...) become one part with their string form."""
    return [_text_part(str(content))]


@content_to_parts.register(type(None))
def _none_to_parts(content) -> List[dict]:
    return [_text_part("")]


@content_to_parts.register(str)
def _str_to_parts(content: str) -> List[dict]:
    return [_text_part(content)]


@content_to_parts.register(list)
def _list_to_parts(content: list) -> List[dict]:
    parts = [
        part
        for part in (_list_entry_to_part(entry) for entry in content)
        if part is not None
    ]
    return parts or [_text_part("")]


@content_to_parts.register(dict)
def _dict_to_parts(content: dict) -> List[dict]:
    for key in ("text", "content"):
        if isinstance(content.get(key), str):
            return [_text_part(content[key])]
    return [_text_part("")]


def map_messages_to_contents(messages: list) -> Tuple[List[dict], List[dict]]:
    """
    Splits OpenAI-style messages into Generative Language `contents` and a flat
    list of system instruction parts. Order is preserved in both.
    """
    contents = []
    system_parts = []
    for msg_data in messages:
        if not isinstance(msg_data, dict):
            continue
        role = msg_data.get("role")
        if not role:
            continue
        role = str(role).lower()

        parts = content_to_parts(msg_data.get("content")) or [_text_part("")]

        if role == "system":
            system_parts.extend(parts)
            continue

        contents.append(
            {"role": "model" if role == "assistant" else "user", "parts": parts}
        )
    return contents, system_parts


def build_vertex_payload(gen_request: GenerationRequest) -> dict:
    contents, system_parts = map_messages_to_contents(gen_request.messages)
    if not contents:
        raise ClientInputError(
            "messages must include at least one user or assistant message"
        )

    generation_config = {}
    if gen_request.temperature is not None:
        generation_config["temperature"] = gen_request.temperature
    if gen_request.top_p is not None:
        generation_config["topP"] = gen_request.top_p
    if gen_request.max_tokens is not None:
        generation_config["maxOutputTokens"] = gen_request.max_tokens

    payload = {"contents": contents, "generationConfig": generation_config}
    if system_parts:
        payload["systemInstruction"] = {"role": "system", "parts": system_parts}
    return payload


def normalize_vertex_model_name(model_name: str) -> str:
    if model_name.startswith("models/"):
        return model_name.split("models/", 1)[1]
    return model_name


def map_request_to_provider(
    provider_name: str, original_request_data: dict, settings: Settings
) -> dict:
    """
    Maps a relay request to the keyword arguments of the provider's client call.
    original_request_data is expected to be like:
    {
        "model": "requested_model_name", (optional)
        "messages": [{"role": "user", "content": "Hello"}, ...],
        "max_tokens": 180, (optional)
        "temperature": 0.7, (optional)
        "top_p": 0.9, (optional)
        "stream": False (optional)
    }
    """
    gen_request = parse_generation_request(original_request_data)

    if provider_name == PROVIDER_GROQ:
        # Forwarded as-is; Groq speaks the OpenAI schema natively
        return {
            "model_name": gen_request.model or settings.groq_model,
            "messages_list": gen_request.messages,
            "temperature": gen_request.temperature,
            "max_tokens": gen_request.max_tokens,
            "top_p": gen_request.top_p,
            "stream": gen_request.stream,
        }

    if provider_name == PROVIDER_VERTEX:
        if gen_request.stream:
            raise ClientInputError("stream is not supported for the vertex provider")
        return {
            "model_name": normalize_vertex_model_name(
                str(gen_request.model or settings.vertex_model)
            ),
            "payload": build_vertex_payload(gen_request),
        }

    raise ValueError(f"Unknown provider name: {provider_name}")
