"""Service errors carrying an HTTP-style code and a machine-readable reason."""

from __future__ import annotations

from http import HTTPStatus

UNKNOWN_CODE = int(HTTPStatus.INTERNAL_SERVER_ERROR)
UNKNOWN_REASON = ""


class ServiceError(Exception):
    """An error with a status code, a reason and a human message.

    Two errors are equal when their code and reason match.
    """

    def __init__(
        self,
        code: int,
        reason: str,
        message: str,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.reason = reason
        self.message = message
        self.cause = cause
        self.__cause__ = cause

    def __str__(self) -> str:
        text = f"error: code = {self.code} reason = {self.reason} message = {self.message}"
        if self.cause is not None:
            text += f" cause = {self.cause}"
        return text

    def __repr__(self) -> str:
        return f"ServiceError({self.code!r}, {self.reason!r}, {self.message!r})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ServiceError):
            return NotImplemented
        return (self.code, self.reason) == (other.code, other.reason)

    def __hash__(self) -> int:
        return hash((self.code, self.reason))


def bad_request(reason: str, message: str) -> ServiceError:
    return ServiceError(int(HTTPStatus.BAD_REQUEST), reason, message)


def unauthorized(reason: str, message: str) -> ServiceError:
    return ServiceError(int(HTTPStatus.UNAUTHORIZED), reason, message)


def forbidden(reason: str, message: str) -> ServiceError:
    return ServiceError(int(HTTPStatus.FORBIDDEN), reason, message)


def internal_server(reason: str, message: str) -> ServiceError:
    return ServiceError(int(HTTPStatus.INTERNAL_SERVER_ERROR), reason, message)


def from_exception(err: BaseException | None) -> ServiceError | None:
    """Find a ServiceError in ``err``'s cause chain, or wrap ``err`` as an unknown one."""
    if err is None:
        return None
    seen: set[int] = set()
    current: BaseException | None = err
    while current is not None and id(current) not in seen:
        if isinstance(current, ServiceError):
            return current
        seen.add(id(current))
        current = current.__cause__
    return ServiceError(UNKNOWN_CODE, UNKNOWN_REASON, str(err), cause=err)


SMS_TEMPLATE_NOT_CONFIGURED = internal_server("SMS_TEMPLATE_NOT_CONFIGURED", "短信模板未配置")
EMAIL_TEMPLATE_NOT_CONFIGURED = internal_server(
    "EMAIL_TEMPLATE_NOT_CONFIGURED", "邮件模板未配置"
)