import asyncio
import hashlib
import smtplib
from urllib.parse import parse_qs

import httpx
import pytest

from app.core.exceptions import EmailDeliveryError, ImageServiceError
from app.services import email_service
from app.services.email_service import EmailService
from app.services.image_service import ImageService

from conftest import AVATAR


@pytest.fixture
def cloud_settings(settings):
    return settings.model_copy(update={
        "CLOUDINARY_CLOUD_NAME": "demo",
        "CLOUDINARY_API_KEY": "key123",
        "CLOUDINARY_API_SECRET": "shh",
    })


def _form(request: httpx.Request) -> dict:
    return {k: v[0] for k, v in parse_qs(request.content.decode()).items()}


def _expected_signature(form: dict, *signed_keys: str) -> str:
    to_sign = "&".join(f"{key}={form[key]}" for key in sorted(signed_keys))
    return hashlib.sha1(f"{to_sign}shh".encode()).hexdigest()


def test_upload_avatar_sends_signed_fixed_transform(cloud_settings):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={
            "public_id": "avatars/abc",
            "secure_url": "https://res.cloudinary.com/demo/image/upload/avatars/abc.png",
        })

    service = ImageService(cloud_settings, transport=httpx.MockTransport(handler))
    avatar = asyncio.run(service.upload_avatar(AVATAR))

    assert avatar.public_id == "avatars/abc"
    assert avatar.url.startswith("https://")

    request = seen[0]
    assert str(request.url) == "https://api.cloudinary.com/v1_1/demo/image/upload"
    form = _form(request)
    assert form["folder"] == "avatars"
    assert form["transformation"] == "c_scale,w_150"
    assert form["api_key"] == "key123"
    assert form["file"] == AVATAR
    assert form["signature"] == _expected_signature(form, "folder", "timestamp", "transformation")


def test_destroy_signs_public_id(cloud_settings):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"result": "ok"})

    service = ImageService(cloud_settings, transport=httpx.MockTransport(handler))

    assert asyncio.run(service.destroy("avatars/abc")) is True
    form = _form(seen[0])
    assert str(seen[0].url).endswith("/image/destroy")
    assert form["public_id"] == "avatars/abc"
    assert form["signature"] == _expected_signature(form, "public_id", "timestamp")


def test_destroy_missing_image_is_not_an_error(cloud_settings):
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json={"result": "not found"}))
    service = ImageService(cloud_settings, transport=transport)

    assert asyncio.run(service.destroy("avatars/gone")) is False


def test_image_host_error_status(cloud_settings):
    transport = httpx.MockTransport(
        lambda request: httpx.Response(400, json={"error": {"message": "Invalid image file"}})
    )
    service = ImageService(cloud_settings, transport=transport)

    with pytest.raises(ImageServiceError, match="Invalid image file"):
        asyncio.run(service.upload_avatar(AVATAR))


def test_image_host_network_failure(cloud_settings):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    service = ImageService(cloud_settings, transport=httpx.MockTransport(handler))

    with pytest.raises(ImageServiceError, match="Network error"):
        asyncio.run(service.upload_avatar(AVATAR))


def test_image_host_not_configured(settings):
    with pytest.raises(ImageServiceError, match="not configured"):
        asyncio.run(ImageService(settings).upload_avatar(AVATAR))


@pytest.fixture
def smtp_settings(settings):
    return settings.model_copy(update={
        "SMTP_HOST": "smtp.test",
        "SMTP_PORT": 465,
        "SMTP_USER": "mailer",
        "SMTP_PASSWORD": "pw",
        "SMTP_FROM": "shop@test",
    })


class RecordingSMTP:
    sent = []
    fail_login = False

    def __init__(self, host, port, context=None):
        self.host = host
        self.port = port

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def login(self, user, password):
        if self.fail_login:
            raise smtplib.SMTPAuthenticationError(535, b"Authentication failed")

    def sendmail(self, sender, recipients, message):
        self.sent.append((sender, recipients, message))


@pytest.fixture
def smtp(monkeypatch):
    RecordingSMTP.sent = []
    RecordingSMTP.fail_login = False
    monkeypatch.setattr(email_service.smtplib, "SMTP_SSL", RecordingSMTP)
    return RecordingSMTP


def test_email_sent_over_ssl(smtp_settings, smtp):
    asyncio.run(EmailService(smtp_settings).send("a@x.com", "Hello", "Reset link"))

    sender, recipients, message = smtp.sent[0]
    assert sender == "shop@test"
    assert recipients == ["a@x.com"]
    assert "Subject: Hello" in message


def test_email_failure_raises_delivery_error(smtp_settings, smtp):
    smtp.fail_login = True

    with pytest.raises(EmailDeliveryError, match="Authentication failed"):
        asyncio.run(EmailService(smtp_settings).send("a@x.com", "Hello", "Reset link"))


def test_email_not_configured(settings):
    with pytest.raises(EmailDeliveryError, match="not configured"):
        asyncio.run(EmailService(settings).send("a@x.com", "Hello", "Reset link"))
