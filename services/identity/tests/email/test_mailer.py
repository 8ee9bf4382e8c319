import pytest

from app.config import Settings
from app.email import brevo, smtp
from app.email.send import Mailer
from app.exceptions import EmailDeliveryFailed


def _settings(**overrides) -> Settings:
    values = {
        "smtp_host": "",
        "smtp_from_email": "",
        "brevo_api_key": "",
        "app_base_url": "http://frontend.test",
    }
    values.update(overrides)
    return Settings(**values)


def _recorder(calls: list, name: str, ok: bool):
    async def deliver(to_email, to_name, subject, html, settings) -> bool:
        calls.append(name)
        return ok

    return deliver


@pytest.mark.asyncio
async def test_smtp_success_skips_brevo(monkeypatch) -> None:
    calls: list[str] = []
    monkeypatch.setattr(smtp, "deliver", _recorder(calls, "smtp", True))
    monkeypatch.setattr(brevo, "deliver", _recorder(calls, "brevo", True))
    mailer = Mailer(_settings(smtp_host="mail.test", smtp_from_email="noreply@test", brevo_api_key="k"))

    await mailer.send_welcome("ada@example.com", "ada")
    assert calls == ["smtp"]


@pytest.mark.asyncio
async def test_falls_back_to_brevo(monkeypatch) -> None:
    calls: list[str] = []
    monkeypatch.setattr(smtp, "deliver", _recorder(calls, "smtp", False))
    monkeypatch.setattr(brevo, "deliver", _recorder(calls, "brevo", True))
    mailer = Mailer(_settings(smtp_host="mail.test", smtp_from_email="noreply@test", brevo_api_key="k"))

    await mailer.send_password_changed("ada@example.com", "ada")
    assert calls == ["smtp", "brevo"]


@pytest.mark.asyncio
async def test_all_providers_failing_raises(monkeypatch) -> None:
    calls: list[str] = []
    monkeypatch.setattr(smtp, "deliver", _recorder(calls, "smtp", False))
    monkeypatch.setattr(brevo, "deliver", _recorder(calls, "brevo", False))
    mailer = Mailer(_settings(smtp_host="mail.test", smtp_from_email="noreply@test", brevo_api_key="k"))

    with pytest.raises(EmailDeliveryFailed):
        await mailer.send_verification_code("ada@example.com", "ada", "123456", 600)
    assert calls == ["smtp", "brevo"]


@pytest.mark.asyncio
async def test_no_provider_configured_skips_quietly(monkeypatch) -> None:
    calls: list[str] = []
    monkeypatch.setattr(smtp, "deliver", _recorder(calls, "smtp", False))
    monkeypatch.setattr(brevo, "deliver", _recorder(calls, "brevo", False))

    await Mailer(_settings()).send_welcome("ada@example.com", "ada")
    assert calls == []


@pytest.mark.asyncio
async def test_reset_email_links_to_frontend(monkeypatch) -> None:
    sent: dict = {}

    async def capture(self, to_email, to_name, subject, html) -> None:
        sent.update(to=to_email, subject=subject, html=html)

    monkeypatch.setattr(Mailer, "send", capture)
    await Mailer(_settings()).send_password_reset("ada@example.com", "<ada>", "tok.en", 900)

    assert "http://frontend.test/reset-password?token=tok.en" in sent["html"]
    assert "15 minutes" in sent["html"]
    assert "&lt;ada&gt;" in sent["html"]


def test_smtp_message_headers() -> None:
    settings = _settings(smtp_host="mail.test", smtp_from_email="noreply@insighta.app")
    msg = smtp.build_message("ada@example.com", "Ada", "Hello", "<p>Hi</p>", settings)
    assert msg["From"] == "Insighta <noreply@insighta.app>"
    assert msg["To"] == "Ada <ada@example.com>"
    assert msg.get_content_subtype() == "html"
