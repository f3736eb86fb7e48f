"""Chinese messages for field validation failures."""

from __future__ import annotations

from typing import Iterator

from . import debuginfo

_FIELD_NAMES = dict(
    (
        ("Username", "用户名"),
        ("Password", "密码"),
        ("Email", "邮箱"),
        ("Age", "年龄"),
        ("Mobile", "手机号"),
        ("IdCard", "身份证号"),
    )
)

_REASON_TEMPLATES = (
    ("value length must be at least", "{}长度不够"),
    ("value length must be between", "{}长度不符合要求"),
    ("is required", "{}不能为空"),
    ("must be a valid email", "{}格式不正确"),
    ("value must be greater than", "{}太小了"),
    ("value must be less than", "{}太大了"),
    ("value must be inside range", "{}不在合法范围内"),
    ("value does not match regex pattern", "{}格式错误"),
)


class FieldValidationError(ValueError):
    """A request field failed validation."""

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(f"invalid {field}: {reason}")
        self.field = field
        self.reason = reason

    @property
    def error_name(self) -> str:
        return type(self).__name__


def _chain(err: BaseException) -> Iterator[BaseException]:
    seen: set[int] = set()
    current: BaseException | None = err
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        yield current
        current = current.__cause__


def translate(err: BaseException | None) -> str:
    """Turn a validation failure anywhere in the cause chain into a readable message."""
    if err is None:
        return "success"

    validation = next((e for e in _chain(err) if isinstance(e, FieldValidationError)), None)
    if validation is None:
        return str(err)

    field = _FIELD_NAMES.get(validation.field, validation.field)
    reason = validation.reason
    for needle, template in _REASON_TEMPLATES:
        if needle in reason:
            return template.format(field)

    if debuginfo.is_debug():
        return f"{field}校验失败: {reason}"
    return f"{field}校验失败"