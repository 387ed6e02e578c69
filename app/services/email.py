from app.core.config import Settings
from loguru import logger
import aiosmtplib
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart


async def send_email_smtp(settings: Settings, email_to: str, subject: str, body: str) -> bool:
    """Best-effort delivery: failures are logged and reported as False, never raised."""
    try:
        message = MIMEMultipart("alternative")
        message["Subject"] = subject
        message["From"] = f"{settings.EMAILS_FROM_NAME} <{settings.EMAILS_FROM_EMAIL}>"
        message["To"] = email_to

        html_part = MIMEText(body, "html")
        message.attach(html_part)

        await aiosmtplib.send(
            message,
            hostname=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
            start_tls=settings.SMTP_TLS,
        )

        logger.info(f"Email sent successfully to {email_to}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {email_to}: {str(e)}")
        return False


def _layout(title: str, content: str, footer: str) -> str:
    return f"""
    <!DOCTYPE html>
    <html lang="en">
    <head>
        <meta charset="UTF-8">
        <meta name="viewport" content="width=device-width, initial-scale=1.0">
        <title>{title}</title>
    </head>
    <body style="margin: 0; padding: 20px; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif; background-color: #f4f7fa;">
        <table cellpadding="0" cellspacing="0" border="0" width="600" align="center" style="max-width: 600px; background-color: #ffffff; border-radius: 12px;">
            <tr>
                <td style="padding: 40px 30px; text-align: center; background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); border-radius: 12px 12px 0 0;">
                    <h1 style="margin: 0; color: #ffffff; font-size: 28px;">Magic Spin Laundry</h1>
                    <p style="margin: 8px 0 0 0; color: #ffffff; font-size: 16px;">{title}</p>
                </td>
            </tr>
            <tr>
                <td style="padding: 40px 30px; color: #4a5568; font-size: 16px; line-height: 1.7;">
                    {content}
                </td>
            </tr>
            <tr>
                <td style="padding: 30px; background-color: #f7fafc; text-align: center; color: #a0aec0; font-size: 12px; border-radius: 0 0 12px 12px;">
                    {footer}
                </td>
            </tr>
        </table>
    </body>
    </html>
    """


def _button(url: str, label: str) -> str:
    return f"""
    <div style="text-align: center; margin: 24px 0;">
        <a href="{url}" style="display: inline-block; padding: 16px 36px; background: #667eea; color: #ffffff; text-decoration: none; border-radius: 8px; font-weight: 600;">{label}</a>
    </div>
    <p style="font-size: 13px; color: #718096;">Button not working? Copy and paste this link into your browser:<br>
        <a href="{url}" style="color: #667eea; word-break: break-all;">{url}</a>
    </p>
    """


async def send_verification_email(settings: Settings, email_to: str, token: str, full_name: str) -> bool:
    verification_url = f"{settings.FRONTEND_URL}/verify-email?token={token}"
    first_name = full_name.split(" ")[0] if full_name else ""

    subject = "Welcome to Magic Spin Laundry - Verify Your Email"
    content = f"""
        <p style="font-size: 20px; color: #1a202c; font-weight: 600;">Hi {first_name}!</p>
        <p>Welcome to <strong>Magic Spin Laundry</strong>. Please verify your email address to start scheduling pickups.</p>
        {_button(verification_url, "Verify My Email Address")}
        <p style="font-size: 14px;">This verification link will expire in {settings.VERIFICATION_TOKEN_EXPIRE_HOURS} hours.</p>
    """
    body = _layout(
        "Verify Your Email",
        content,
        "You received this email because you created an account at Magic Spin Laundry.",
    )

    return await send_email_smtp(settings, email_to, subject, body)


async def send_password_reset_email(settings: Settings, email_to: str, token: str, full_name: str) -> bool:
    reset_url = f"{settings.FRONTEND_URL}/reset-password?token={token}"
    first_name = full_name.split(" ")[0] if full_name else ""

    subject = "Reset Your Password - Magic Spin Laundry"
    content = f"""
        <p style="font-size: 20px; color: #1a202c; font-weight: 600;">Hi {first_name},</p>
        <p>We received a request to reset the password for the account associated with <strong>{email_to}</strong>.</p>
        {_button(reset_url, "Reset My Password")}
        <p style="font-size: 14px;">This link will expire in {settings.RESET_TOKEN_EXPIRE_HOURS} hour(s).
        If you didn't ask to reset your password, you can safely ignore this email.</p>
    """
    body = _layout(
        "Password Reset Request",
        content,
        "This is an automated security email. Please do not reply to this message.",
    )

    return await send_email_smtp(settings, email_to, subject, body)
