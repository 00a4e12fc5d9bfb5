"""Typed failures raised by the score engine.

Each carries the HTTP status the API boundary answers with.
"""
from __future__ import annotations


class MirageError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(MirageError):
    status_code = 400


class UnsupportedGameError(MirageError):
    status_code = 400

    def __init__(self, game: str):
        super().__init__(
            f"Game '{game}' is not supported. Ensure that you are using the case-sensitive "
            "version of either the internal name or formatted name"
        )
        self.game = game


class MissingParameterError(MirageError):
    status_code = 400

    def __init__(self, message: str = "Missing required parameters"):
        super().__init__(message)


class AuthenticationError(MirageError):
    status_code = 401


class NotFoundError(MirageError):
    status_code = 404


class InternalError(MirageError):
    status_code = 500
