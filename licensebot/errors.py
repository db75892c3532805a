from __future__ import annotations

# 명령어와 HTTP 응답이 같은 오류 분류를 쓰도록 예외 계층을 정의합니다.


class LicenseError(Exception):
    """Base error; ``message`` is shown to the caller, ``status`` is the HTTP code."""

    status = 500
    default_message = "An error occurred"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class BadRequest(LicenseError):
    status = 400
    default_message = "Bad request"


class NoOp(LicenseError):
    status = 400
    default_message = "Nothing to change"


class Unauthorized(LicenseError):
    status = 401
    default_message = "Unauthorized"


class NotFound(LicenseError):
    status = 404
    default_message = "Not found"


class NoLicense(NotFound):
    default_message = "You don't have a license! Contact the bot owner."


class AlreadyExists(LicenseError):
    status = 409
    default_message = "Already exists"


class AlreadyLicensed(AlreadyExists):
    def __init__(self, license_key: str, message: str | None = None):
        self.license_key = license_key
        super().__init__(message or f"This user already has a license: {license_key}")


class TooManyRequests(LicenseError):
    status = 429
    default_message = "Too many requests, please try again later."


class StorageError(LicenseError):
    status = 500
    default_message = "Internal server error"
