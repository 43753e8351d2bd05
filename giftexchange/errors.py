"""Error kinds surfaced by the gift exchange.

Every domain failure carries a stable ``code`` and a fixed user-facing
message, so the HTTP layer can render specific guidance without leaking who
else is still waiting or matched.
"""

from __future__ import annotations

from http import HTTPStatus


class SecretSantaError(Exception):
    code = "secret_santa_error"
    message = "The gift exchange could not process this request."
    status_code = HTTPStatus.BAD_REQUEST

    def __init__(self, message: str | None = None) -> None:
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_dict(self) -> dict[str, str]:
        return {"code": self.code, "message": self.message}


class NotRegisteredError(SecretSantaError):
    code = "not_registered"
    message = "Confirm your participation first."
    status_code = HTTPStatus.BAD_REQUEST


class AlreadyMatchedError(SecretSantaError):
    code = "already_matched"
    message = "You have already drawn your recipient."
    status_code = HTTPStatus.CONFLICT


class NoCandidatesError(SecretSantaError):
    code = "no_candidates"
    message = "Nobody is available to draw right now."
    status_code = HTTPStatus.CONFLICT


class NoMatchError(SecretSantaError):
    code = "no_match"
    message = "Draw your recipient first."
    status_code = HTTPStatus.UNPROCESSABLE_ENTITY


class InsufficientParticipantsError(SecretSantaError):
    code = "insufficient_participants"
    message = "At least two waiting participants are needed for a bulk draw."
    status_code = HTTPStatus.CONFLICT


class InvalidPayloadError(SecretSantaError):
    code = "invalid_payload"
    message = "Invalid data."
    status_code = HTTPStatus.UNPROCESSABLE_ENTITY


class StorageUnavailableError(SecretSantaError):
    """Raised once transient storage failures have exhausted their retries."""

    code = "storage_unavailable"
    message = "The service is busy. Please try again in a moment."
    status_code = HTTPStatus.SERVICE_UNAVAILABLE
