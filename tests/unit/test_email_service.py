"""Unit tests for EmailService."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from school_portal.services.email_service import EmailService


@pytest.fixture
def settings():
    return MagicMock(
        email_from="noreply@school.example",
        smtp_host="smtp.example.com",
        smtp_port=587,
        smtp_username="mailer",
        smtp_password="pass",
        smtp_use_tls=False,
        frontend_url="https://portal.example/",
    )


@pytest.fixture
def service(settings):
    return EmailService(settings)


class TestSendWelcomeEmail:
    async def test_sends_login_details(self, service):
        with patch("aiosmtplib.send", new_callable=AsyncMock) as mock_send:
            result = await service.send_welcome_email(
                "alice@example.com", "Alice", "Martin", "Bright2026#A742"
            )

        assert result.success is True
        assert result.message_id
        assert result.error is None

        message = mock_send.call_args.args[0]
        body = message.get_content()
        assert message["To"] == "alice@example.com"
        assert message["From"] == "noreply@school.example"
        assert message["Message-ID"] == result.message_id
        assert "Welcome Alice Martin" in body
        assert "Bright2026#A742" in body
        assert "https://portal.example/login" in body

        kwargs = mock_send.call_args.kwargs
        assert kwargs["hostname"] == "smtp.example.com"
        assert kwargs["port"] == 587
        assert kwargs["username"] == "mailer"

    async def test_failure_is_reported_not_raised(self, service):
        with patch(
            "aiosmtplib.send",
            new_callable=AsyncMock,
            side_effect=Exception("SMTP connection failed"),
        ):
            result = await service.send_welcome_email(
                "alice@example.com", "Alice", "Martin", "Bright2026#A742"
            )

        assert result.success is False
        assert result.error == "SMTP connection failed"
        assert result.message_id is None


class TestSendTestEmail:
    async def test_returns_true_on_success(self, service):
        with patch("aiosmtplib.send", new_callable=AsyncMock) as mock_send:
            assert await service.send_test_email("admin@example.com") is True
        mock_send.assert_called_once()

    async def test_returns_false_on_failure(self, service):
        with patch("aiosmtplib.send", new_callable=AsyncMock, side_effect=OSError("refused")):
            assert await service.send_test_email("admin@example.com") is False


class TestVerifyConfiguration:
    async def test_connects_and_logs_in(self, service):
        smtp = AsyncMock()
        with patch("aiosmtplib.SMTP", return_value=smtp):
            assert await service.verify_configuration() is True

        smtp.connect.assert_called_once()
        smtp.login.assert_called_once_with("mailer", "pass")
        smtp.quit.assert_called_once()

    async def test_connection_error(self, service):
        smtp = AsyncMock()
        smtp.connect.side_effect = OSError("connection refused")
        with patch("aiosmtplib.SMTP", return_value=smtp):
            assert await service.verify_configuration() is False
