# app.py
from dataclasses import dataclass
from typing import Any, Optional

from dotenv import load_dotenv
from flask import Blueprint, Flask, Response, current_app, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from config import (
    MAX_REQUEST_BYTES,
    PROVIDER_GROQ,
    PROVIDER_VERTEX,
    SERVICE_NAME,
    Settings,
    configure_logging,
)
from credentials import CredentialState, NoCredentials, resolve_credentials
from errors import ConfigurationError, RelayError, UpstreamError
from request_mapper import map_request_to_provider
from response_mapper import normalize_response

from llm_clients.openai_client import call_openai_model_unified
from llm_clients.vertexai_client import call_gemini_model_unified

EXTENSION_KEY = "chat_relay"


@dataclass(frozen=True)
class RelayContext:
    settings: Settings
    credentials: CredentialState
    # httpx transport override for upstream calls (tests inject a MockTransport)
    transport: Optional[Any] = None


api = Blueprint("api", __name__, url_prefix="/api")


def _relay() -> RelayContext:
    return current_app.extensions[EXTENSION_KEY]


@api.route("/health", methods=["GET"])
def health():
    relay = _relay()
    settings = relay.settings
    body = {"ok": True, "service": SERVICE_NAME, "provider": settings.provider}
    if settings.provider == PROVIDER_VERTEX:
        body["hasCredentials"] = not isinstance(relay.credentials, NoCredentials)
        body["authMode"] = relay.credentials.auth_mode
        body["model"] = settings.vertex_model
    else:
        body["hasKey"] = bool(settings.groq_api_key)
    return jsonify(body)


@api.route("/chat", methods=["POST"])
async def handle_chat():
    relay = _relay()
    settings = relay.settings

    # Client input problems are reported before configuration problems
    request_data = request.get_json(silent=True)
    provider_params = map_request_to_provider(settings.provider, request_data, settings)

    if settings.provider == PROVIDER_GROQ:
        if not settings.groq_api_key:
            raise ConfigurationError("Server missing GROQ_API_KEY")
        body_text = await call_openai_model_unified(
            settings, transport=relay.transport, **provider_params
        )
        return Response(body_text, status=200, mimetype="application/json")

    if isinstance(relay.credentials, NoCredentials):
        raise ConfigurationError("Server missing Vertex credentials")
    provider_response = await call_gemini_model_unified(
        settings, relay.credentials, transport=relay.transport, **provider_params
    )
    return jsonify(normalize_response(provider_response, provider_params["model_name"]))


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(RelayError)
    def handle_relay_error(e):
        app.logger.warning(
            "Chat request failed (%s): %s", e.status_code, e.detail or e.message
        )
        if isinstance(e, UpstreamError) and not isinstance(e.body, dict):
            # OpenAI-compatible path: relay the upstream body verbatim
            return Response(e.body, status=e.status_code, mimetype="application/json")
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(Exception)
    def handle_unexpected_error(e):
        if isinstance(e, HTTPException):
            return e
        app.logger.exception("Error in %s", request.path)
        return jsonify({"error": "internal_error", "detail": str(e)}), 500


def create_app(
    settings: Settings = None,
    credentials: CredentialState = None,
    transport=None,
) -> Flask:
    if settings is None:
        settings = Settings.from_env()
    if credentials is None:
        credentials = (
            resolve_credentials(settings)
            if settings.provider == PROVIDER_VERTEX
            else NoCredentials()
        )

    app = Flask(__name__)
    app.config["MAX_CONTENT_LENGTH"] = MAX_REQUEST_BYTES
    app.extensions[EXTENSION_KEY] = RelayContext(
        settings=settings, credentials=credentials, transport=transport
    )

    CORS(
        app,
        resources={r"/api/*": {"origins": "*"}},
        methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
        send_wildcard=True,
    )
    register_error_handlers(app)
    app.register_blueprint(api)

    app.logger.info(
        "Chat relay configured: provider=%s auth_mode=%s",
        settings.provider,
        credentials.auth_mode
        if settings.provider == PROVIDER_VERTEX
        else ("api_key" if settings.groq_api_key else "none"),
    )
    return app


if __name__ == "__main__":
    load_dotenv()
    settings = Settings.from_env()
    configure_logging(settings)
    app = create_app(settings)
    # For an ASGI server instead: hypercorn "app:create_app()" -b 0.0.0.0:3000
    app.run(host="0.0.0.0", port=settings.port)
