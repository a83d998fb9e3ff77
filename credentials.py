# credentials.py
import json
import asyncio
import logging
from dataclasses import dataclass, field
from typing import Optional, Union

from google.oauth2 import service_account
from google.auth.transport import requests as google_auth_requests

from config import Settings

logger = logging.getLogger(__name__)

SERVICE_ACCOUNT_SCOPES = (
    "https://www.googleapis.com/auth/cloud-platform",
    "https://www.googleapis.com/auth/generative-language",
)
REQUIRED_SERVICE_ACCOUNT_FIELDS = ("client_email", "private_key")

SOURCE_INLINE = "inline"
SOURCE_FILE = "file"


@dataclass(frozen=True)
class NoCredentials:
    auth_mode = "none"


@dataclass(frozen=True)
class ApiKeyCredentials:
    api_key: str = field(repr=False)
    auth_mode = "api_key"


@dataclass(frozen=True)
class ServiceAccountCredentials:
    """
    Service-account key material. A fresh access token is exchanged on every
    call to fetch_token(); nothing is cached between requests.
    """

    info: dict = field(repr=False)
    source: str = SOURCE_INLINE

    @property
    def auth_mode(self) -> str:
        if self.source == SOURCE_FILE:
            return "service_account_file"
        return "service_account_json"

    @property
    def client_email(self) -> str:
        return self.info.get("client_email", "")

    def _refresh_token(self) -> Optional[str]:
        creds = service_account.Credentials.from_service_account_info(
            self.info, scopes=list(SERVICE_ACCOUNT_SCOPES)
        )
        creds.refresh(google_auth_requests.Request())
        return creds.token

    async def fetch_token(self) -> Optional[str]:
        """Returns an access token, or None when the exchange fails."""
        try:
            # google-auth's refresh is blocking; keep it off the event loop
            token = await asyncio.to_thread(self._refresh_token)
        except Exception as e:
            logger.warning(
                "Service account token exchange failed for %s: %s",
                self.client_email,
                e,
            )
            return None
        if not token:
            logger.warning(
                "Service account token exchange for %s returned no token",
                self.client_email,
            )
            return None
        return token


CredentialState = Union[NoCredentials, ApiKeyCredentials, ServiceAccountCredentials]


def parse_service_account_info(raw: str, origin: str) -> Optional[dict]:
    try:
        info = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning("Ignoring %s: not valid JSON (%s)", origin, e)
        return None
    if not isinstance(info, dict):
        logger.warning("Ignoring %s: expected a JSON object", origin)
        return None
    missing = [
        name
        for name in REQUIRED_SERVICE_ACCOUNT_FIELDS
        if not isinstance(info.get(name), str) or not info.get(name)
    ]
    if missing:
        logger.warning(
            "Ignoring %s: missing service account field(s) %s",
            origin,
            ", ".join(missing),
        )
        return None
    return info


def load_service_account_file(path: str) -> Optional[dict]:
    try:
        with open(path, "r", encoding="utf-8") as fh:
            raw = fh.read()
    except OSError as e:
        logger.warning("Ignoring service account file %s: %s", path, e)
        return None
    return parse_service_account_info(raw, f"service account file {path}")


def resolve_credentials(settings: Settings) -> CredentialState:
    """
    Picks the Generative Language auth mode, first usable source wins:
    API key, then inline service-account JSON, then service-account file.
    Unusable material is logged and skipped.
    """
    if settings.vertex_api_key:
        return ApiKeyCredentials(api_key=settings.vertex_api_key)

    if settings.service_account_json:
        info = parse_service_account_info(
            settings.service_account_json, "GOOGLE_SERVICE_ACCOUNT_JSON"
        )
        if info is not None:
            return ServiceAccountCredentials(info=info, source=SOURCE_INLINE)

    if settings.service_account_file:
        info = load_service_account_file(settings.service_account_file)
        if info is not None:
            return ServiceAccountCredentials(info=info, source=SOURCE_FILE)

    return NoCredentials()
