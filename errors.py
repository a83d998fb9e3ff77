# errors.py


class RelayError(Exception):
    """Base class for errors that terminate a chat request with a JSON reply."""

    status_code = 500

    def __init__(self, message: str, detail: str = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_dict(self) -> dict:
        body = {"error": self.message}
        if self.detail:
            body["detail"] = self.detail
        return body


class ClientInputError(RelayError):
    status_code = 400


class ConfigurationError(RelayError):
    status_code = 500


class TokenAcquisitionError(RelayError):
    status_code = 500


class UpstreamError(RelayError):
    """
    Non-2xx reply from the upstream provider.
    `body` is either the raw text (relayed verbatim) or a parsed JSON dict.
    """

    def __init__(self, status_code: int, body, hint: str = None):
        super().__init__(f"Upstream provider returned HTTP {status_code}")
        self.status_code = status_code
        self.body = body
        self.hint = hint

    def to_dict(self) -> dict:
        if isinstance(self.body, dict):
            body = dict(self.body)
        else:
            body = {"error": self.body}
        if self.hint:
            body["hint"] = self.hint
        return body
