# response_mapper.py
import time
from typing import Optional


def _candidate_parts(candidate) -> list:
    if not isinstance(candidate, dict):
        return []
    content = candidate.get("content")
    if not isinstance(content, dict):
        return []
    parts = content.get("parts")
    return parts if isinstance(parts, list) else []


def select_candidate(provider_response: dict) -> Optional[dict]:
    """First candidate that actually carries parts; earlier empty ones are skipped."""
    candidates = provider_response.get("candidates")
    if not isinstance(candidates, list):
        return None
    for candidate in candidates:
        if _candidate_parts(candidate):
            return candidate
    return None


def candidate_text(candidate: Optional[dict]) -> str:
    if candidate is None:
        return ""
    text_content_parts = []
    for part in _candidate_parts(candidate):
        if isinstance(part, dict) and isinstance(part.get("text"), str):
            text_content_parts.append(part["text"])
    return "".join(text_content_parts).strip()


def _usage_from_metadata(usage_metadata) -> Optional[dict]:
    if not isinstance(usage_metadata, dict):
        return None
    prompt_tokens = usage_metadata.get("promptTokenCount", 0)
    completion_tokens = usage_metadata.get("candidatesTokenCount", 0)
    return {
        "prompt_tokens": prompt_tokens,
        "completion_tokens": completion_tokens,
        "total_tokens": usage_metadata.get(
            "totalTokenCount", prompt_tokens + completion_tokens
        ),
    }


def normalize_response(provider_response: dict, default_model: str) -> dict:
    """
    Normalizes a Generative Language generateContent body into an OpenAI-style
    chat.completion object.
    """
    candidate = select_candidate(provider_response)
    finish_reason = (candidate or {}).get("finishReason") or "stop"

    created = int(time.time())
    response_id = (
        provider_response.get("name")
        or provider_response.get("responseId")
        or f"gemini-{int(time.time() * 1000)}"
    )

    unified_response = {
        "id": response_id,
        "object": "chat.completion",
        "created": created,
        "model": provider_response.get("modelVersion")
        or provider_response.get("model")
        or default_model,
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": candidate_text(candidate)},
                "finish_reason": finish_reason,
            }
        ],
    }

    usage = _usage_from_metadata(provider_response.get("usageMetadata"))
    if usage is not None:
        unified_response["usage"] = usage
    return unified_response
