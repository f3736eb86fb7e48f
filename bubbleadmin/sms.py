"""SMS senders and the factory that picks one."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping, Protocol

from . import env

logger = logging.getLogger(__name__)


class SmsSender(Protocol):
    def send(self, phone: str, template: str, params: Mapping[str, str]) -> None: ...


@dataclass
class SmsConfig:
    """SMS provider settings and the provider template code of each template."""

    provider: str = ""
    access_key: str = ""
    access_secret: str = ""
    sign_name: str = ""
    template_mapping: dict[str, str] = field(default_factory=dict)


class MockSmsSender:
    """Logs text messages instead of sending them."""

    def send(self, phone: str, template: str, params: Mapping[str, str]) -> None:
        logger.info("mock send sms: phone=%s, template=%s, params=%s", phone, template, dict(params))


def new_sms_sender(config: SmsConfig) -> SmsSender:
    """A mock sender in development or for providers without a backend."""
    if env.is_dev():
        return MockSmsSender()
    if config.provider == "aliyun":
        raise ValueError(f"SMS provider {config.provider!r} is not available")
    return MockSmsSender()