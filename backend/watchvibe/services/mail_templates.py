# watchvibe/services/mail_templates.py
"""
Email content builders and Jinja2 rendering.

Content is described structurally (greeting name, intro lines, an optional
call-to-action button, outro lines) and rendered into both an HTML and a
plain-text body from the templates in watchvibe/templates/email.
"""
from dataclasses import dataclass, field
from typing import List, Optional

from jinja2 import Environment, PackageLoader, select_autoescape

OTP_PURPOSE_LOGIN = "login"
OTP_PURPOSE_FORGOT_PASSWORD = "forgetPassword"

_HELP_OUTRO = "Need help, or have questions? Just reply to this email, we'd love to help."

_jinja_env = Environment(
    loader=PackageLoader("watchvibe", "templates/email"),
    autoescape=select_autoescape(["html", "xml"]),
    trim_blocks=True,
    lstrip_blocks=True,
)


@dataclass
class MailAction:
    instructions: str
    text: str
    link: str
    color: str = "#22BC66"


@dataclass
class MailContent:
    name: str
    intro: List[str] = field(default_factory=list)
    action: Optional[MailAction] = None
    outro: List[str] = field(default_factory=list)


def render(content: MailContent, product_name: str, product_link: str) -> tuple[str, str]:
    """Render content into (html, text) bodies."""
    context = {"content": content, "product_name": product_name, "product_link": product_link}
    html = _jinja_env.get_template("layout.html").render(**context)
    text = _jinja_env.get_template("layout.txt").render(**context)
    return html, text


def email_verification_content(username: str, verification_url: str) -> MailContent:
    return MailContent(
        name=username,
        intro=["Welcome to our app! We're very excited to have you on board."],
        action=MailAction(
            instructions="To verify your email please click on the following button:",
            text="Verify your email",
            link=verification_url,
        ),
        outro=[_HELP_OUTRO],
    )


def otp_content(username: str, otp: str, purpose: str, valid_minutes: int) -> tuple[str, MailContent]:
    """
    Build (subject, content) for an OTP mail.

    Raises:
        ValueError: If purpose is not a known OTP purpose
    """
    if purpose == OTP_PURPOSE_LOGIN:
        subject = "Login OTP"
        line = f"Your OTP for login is {otp}."
    elif purpose == OTP_PURPOSE_FORGOT_PASSWORD:
        subject = "Forget Password OTP"
        line = f"Your OTP for resetting password is {otp}."
    else:
        raise ValueError(f"Invalid OTP type: {purpose}")
    content = MailContent(
        name=username,
        intro=[line, f"This OTP is valid for {valid_minutes} minutes."],
        outro=["If you did not request this code, you can safely ignore this email."],
    )
    return subject, content
