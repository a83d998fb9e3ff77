# llm_clients/vertexai_client.py
import logging

import httpx

from config import Settings
from credentials import ApiKeyCredentials, CredentialState, ServiceAccountCredentials
from errors import ConfigurationError, TokenAcquisitionError, UpstreamError

logger = logging.getLogger(__name__)

API_KEY_PERMISSION_HINT = (
    "The API key was rejected. Check that the Generative Language API is enabled "
    "for the key's project and that the key is not restricted from calling it."
)
SERVICE_ACCOUNT_PERMISSION_HINT = (
    "The service account {email} is not allowed to call this model. Enable the "
    "Generative Language API (or Vertex AI API) in its project and grant it a role "
    "with prediction access, such as roles/aiplatform.user."
)


def generate_content_url(settings: Settings, model_name: str) -> str:
    return f"{settings.vertex_api_base}/models/{model_name}:generateContent"


def permission_hint(credentials: CredentialState) -> str:
    if isinstance(credentials, ServiceAccountCredentials):
        return SERVICE_ACCOUNT_PERMISSION_HINT.format(
            email=credentials.client_email or "in use"
        )
    return API_KEY_PERMISSION_HINT


def parse_error_body(response: httpx.Response) -> dict:
    try:
        body = response.json()
    except ValueError:
        return {"error": response.text}
    if isinstance(body, dict):
        return body
    return {"error": body}


async def _auth_for_request(credentials: CredentialState):
    """Returns (query params, headers) for the upstream call."""
    if isinstance(credentials, ApiKeyCredentials):
        return {"key": credentials.api_key}, {}
    if isinstance(credentials, ServiceAccountCredentials):
        token = await credentials.fetch_token()
        if not token:
            raise TokenAcquisitionError(
                "Failed to obtain access token",
                detail=f"Service account token exchange failed for {credentials.client_email}",
            )
        return {}, {"Authorization": f"Bearer {token}"}
    raise ConfigurationError("Server missing Vertex credentials")


async def call_gemini_model_unified(
    settings: Settings,
    credentials: CredentialState,
    model_name: str,
    payload: dict,
    transport=None,
) -> dict:
    """
    POSTs a generateContent payload and returns the parsed JSON body.
    Non-2xx replies raise UpstreamError with the parsed error body; a 403 also
    carries a hint about the likely permission problem.
    """
    params, headers = await _auth_for_request(credentials)

    # No timeout: the call runs until the transport reports completion or failure
    async with httpx.AsyncClient(transport=transport, timeout=None) as client:
        response = await client.post(
            generate_content_url(settings, model_name),
            params=params,
            headers=headers,
            json=payload,
        )

    if response.is_success:
        return response.json()

    logger.error(
        "Generative Language API error (%s) for model %s: %s",
        response.status_code,
        model_name,
        response.text,
    )
    hint = permission_hint(credentials) if response.status_code == 403 else None
    raise UpstreamError(response.status_code, parse_error_body(response), hint=hint)
