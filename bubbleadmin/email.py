"""E-mail senders: a logging mock and an SMTP sender with retries."""

from __future__ import annotations

import functools
import logging
import smtplib
import time
from dataclasses import dataclass, field
from email.message import EmailMessage
from typing import Callable, Mapping, Protocol

import jinja2

from . import env, errors

logger = logging.getLogger(__name__)

MAX_RETRIES = 3
BASE_BACKOFF = 1.0
MAX_BACKOFF = 6.0
_SSL_PORT = 465

Transport = Callable[[EmailMessage], None]


class EmailSender(Protocol):
    def send(self, target: str, template: str, params: Mapping[str, str]) -> None: ...


@dataclass
class SmtpConfig:
    """SMTP server connection settings."""

    host: str = ""
    port: int = 25
    username: str = ""
    password: str = ""


@dataclass
class EmailConfig:
    """Sender address, SMTP server and the subject of each template."""

    from_address: str = ""
    smtp: SmtpConfig = field(default_factory=SmtpConfig)
    subject_mapping: dict[str, str] = field(default_factory=dict)


class MockEmailSender:
    """Logs e-mails instead of sending them."""

    def send(self, target: str, template: str, params: Mapping[str, str]) -> None:
        logger.info("mock send email: to=%s, subject=%s, params=%s", target, template, dict(params))


def _send_via_smtp(config: SmtpConfig, message: EmailMessage) -> None:
    if config.port == _SSL_PORT:
        client: smtplib.SMTP = smtplib.SMTP_SSL(config.host, config.port)
    else:
        client = smtplib.SMTP(config.host, config.port)
    with client:
        if config.port != _SSL_PORT:
            client.ehlo()
            if client.has_extn("starttls"):
                client.starttls()
                client.ehlo()
        if config.username:
            client.login(config.username, config.password)
        client.send_message(message)


class SmtpEmailSender:
    """Renders HTML templates and sends them over SMTP, retrying with backoff."""

    def __init__(
        self,
        config: EmailConfig,
        templates_dir: str,
        transport: Transport | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.config = config
        self._env = jinja2.Environment(
            loader=jinja2.FileSystemLoader(str(templates_dir)),
            autoescape=jinja2.select_autoescape(["html"]),
        )
        self._transport = transport or functools.partial(_send_via_smtp, config.smtp)
        self._sleep = sleep

    def render(self, template: str, params: Mapping[str, str]) -> str:
        """Render ``<template>.html`` with ``params``."""
        return self._env.get_template(f"{template}.html").render(dict(params))

    def send(self, target: str, template: str, params: Mapping[str, str]) -> None:
        subject = self.config.subject_mapping.get(template, "")
        if not subject:
            raise errors.EMAIL_TEMPLATE_NOT_CONFIGURED.with_traceback(None)

        message = EmailMessage()
        message["From"] = self.config.from_address
        message["To"] = target
        message["Subject"] = subject
        message.set_content(self.render(template, params), subtype="html")
        self._send_with_retry(message)

    def _send_with_retry(self, message: EmailMessage) -> None:
        last_error: Exception | None = None
        for attempt in range(MAX_RETRIES):
            try:
                self._transport(message)
            except Exception as exc:
                last_error = exc
            else:
                if attempt > 0:
                    logger.info("Email sent successfully after %d retries", attempt)
                return

            if attempt == MAX_RETRIES - 1:
                break
            backoff = min(BASE_BACKOFF * 2**attempt, MAX_BACKOFF)
            logger.warning(
                "Email send failed (attempt %d/%d): %s. Retrying in %ss...",
                attempt + 1,
                MAX_RETRIES,
                last_error,
                backoff,
            )
            self._sleep(backoff)

        cause = RuntimeError(
            f"failed to send email after {MAX_RETRIES} attempts: {last_error}"
        )
        cause.__cause__ = last_error
        raise errors.ServiceError(500, "SMTP_SEND_FAILED", "邮件发送失败", cause=cause)


def new_email_sender(config: EmailConfig, templates_dir: str) -> EmailSender:
    """A mock sender in development, the SMTP sender otherwise."""
    if env.is_dev():
        return MockEmailSender()
    return SmtpEmailSender(config, templates_dir)