# llm_clients/openai_client.py
import logging

import httpx
from openai import APIStatusError, AsyncOpenAI

from config import Settings
from errors import UpstreamError

logger = logging.getLogger(__name__)


def build_openai_client(settings: Settings, transport=None) -> AsyncOpenAI:
    """One client per request; retries are off so failures surface immediately."""
    http_client = httpx.AsyncClient(transport=transport) if transport else None
    return AsyncOpenAI(
        api_key=settings.groq_api_key,
        base_url=settings.groq_api_base,
        max_retries=0,
        http_client=http_client,
    )


async def call_openai_model_unified(
    settings: Settings,
    model_name: str,
    messages_list: list,
    temperature=None,
    max_tokens=None,
    top_p=None,
    stream=False,
    transport=None,
) -> str:
    """
    Relays a chat completion to the OpenAI-compatible (Groq) endpoint.
    messages_list is forwarded untouched.

    Returns the raw upstream body text. A non-2xx reply raises UpstreamError
    carrying the upstream status and body verbatim.
    """
    async with build_openai_client(settings, transport=transport) as client_openai:
        try:
            raw_response = await client_openai.chat.completions.with_raw_response.create(
                model=model_name,
                messages=messages_list,
                temperature=temperature,
                max_tokens=max_tokens,
                top_p=top_p,
                stream=stream,
            )
        except APIStatusError as e:
            logger.error(
                "OpenAI-compatible API status error: %s - %s",
                e.status_code,
                e.response.text,
            )
            raise UpstreamError(e.status_code, e.response.text) from e

        # With stream=True the SDK leaves the body unread; buffer it either way
        http_response = raw_response.http_response
        await http_response.aread()
        return http_response.text
