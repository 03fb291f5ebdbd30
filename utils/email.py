import smtplib
import logging
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart

import config

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

_STYLE = """
    body {
        font-family: Arial, sans-serif;
        line-height: 1.6;
        color: #333;
        background-color: #f7f7f7;
        margin: 0;
        padding: 0;
    }
    .container {
        width: 100%;
        max-width: 600px;
        margin: 0 auto;
        background-color: #ffffff;
        padding: 20px;
        border-radius: 8px;
        box-shadow: 0 0 10px rgba(0, 0, 0, 0.1);
    }
    .content {
        text-align: center;
    }
    .button {
        background-color: #2d6cdf;
        color: #ffffff;
        padding: 10px 20px;
        border-radius: 5px;
        display: inline-block;
        margin: 20px 0;
        text-decoration: none;
        font-weight: bold;
    }
    .footer {
        margin-top: 30px;
        text-align: center;
        font-size: 12px;
        color: #777;
    }
"""


def _render(title: str, intro: str, link: str, action: str, footer: str) -> str:
    return f"""
        <!DOCTYPE html>
        <html>
        <head>
            <style>{_STYLE}</style>
        </head>
        <body>
            <div class="container">
                <div class="content">
                    <h2>{title}</h2>
                    <p>{intro}</p>
                    <a class="button" href="{link}">{action}</a>
                    <p>If the button does not work, copy this link into your browser:<br/>{link}</p>
                </div>
                <div class="footer">
                    <p>{footer}</p>
                </div>
            </div>
        </body>
        </html>
        """


def build_email(email_type: str, token: str):
    """
    Build subject and HTML body for the given e-mail type.

    Args:
        email_type (str): 'verification' or 'reset'.
        token (str): Token embedded in the link.

    Returns:
        tuple: (subject, body_html), or None for an unknown type.
    """
    if email_type == 'verification':
        link = f"{config.FRONTEND_URL}/verify-email/{token}"
        return "Verify your e-mail address", _render(
            "Welcome!",
            "Thanks for signing up. Please confirm your e-mail address to activate your account.",
            link,
            "Verify e-mail",
            "If you did not create an account, ignore this e-mail.",
        )
    if email_type == 'reset':
        link = f"{config.FRONTEND_URL}/reset-password?token={token}"
        minutes = config.RESET_TOKEN_EXPIRE_MINUTES
        return "Password reset", _render(
            "Password reset",
            f"We received a request to reset your password. The link expires in {minutes} minutes.",
            link,
            "Reset password",
            "If you did not request a password reset, ignore this e-mail.",
        )
    return None


def send_email(email: str, token: str, email_type: str) -> bool:
    """
    Send an e-mail of the given type. Dispatch is best effort: failures are
    logged and reported through the return value, never raised.

    Args:
        email (str): Recipient address.
        token (str): Token to include in the e-mail.
        email_type (str): 'verification' or 'reset'.

    Returns:
        bool: True if the message was handed to the SMTP server.
    """
    smtp_user = config.SMTP_USER
    smtp_pass = config.SMTP_PASS

    if not smtp_user or not smtp_pass:
        logger.warning("SMTP credentials are not configured, %s e-mail not sent", email_type)
        return False

    built = build_email(email_type, token)
    if built is None:
        logger.error("Unknown e-mail type: %s", email_type)
        return False
    subject, body_html = built

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = smtp_user
    msg["To"] = email
    msg.attach(MIMEText(body_html, "html"))

    try:
        with smtplib.SMTP_SSL(config.SMTP_HOST, config.SMTP_PORT) as server:
            server.login(smtp_user, smtp_pass)
            server.sendmail(smtp_user, email, msg.as_string())
        logger.info("%s e-mail sent to %s", email_type, email)
        return True
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Error sending %s e-mail to %s: %s", email_type, email, e)
        return False
