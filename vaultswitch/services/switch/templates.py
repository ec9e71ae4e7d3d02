"""Message templates for owner warnings and nominee notifications.

HTML bodies are autoescaped; text bodies are rendered verbatim. Undefined
variables fail loudly instead of rendering blanks into an email.
"""

from dataclasses import dataclass

from jinja2 import DictLoader, Environment, StrictUndefined, select_autoescape


_LAYOUT_OPEN = """<!DOCTYPE html>
<html>
<head><meta charset="utf-8"></head>
<body style="margin:0;padding:0;background-color:#0a0a0f;font-family:'Segoe UI',Tahoma,sans-serif;">
<table width="100%" cellpadding="0" cellspacing="0" style="padding:40px 20px;"><tr><td align="center">
<table width="600" cellpadding="0" cellspacing="0" style="background:#12121a;border-radius:16px;">
"""
_LAYOUT_CLOSE = """<tr><td style="padding:20px 40px;text-align:center;">
<p style="color:#64748B;font-size:12px;margin:0;">Digital Legacy Vault</p>
</td></tr></table></td></tr></table></body></html>
"""

_TEMPLATES = {
    "warning.subject": "Digital Legacy Vault - Check-in Reminder",
    "warning.html": _LAYOUT_OPEN
    + """<tr><td style="padding:40px;text-align:center;">
<h1 style="color:#FBBF24;font-size:24px;margin:0;">Check-in Reminder</h1></td></tr>
<tr><td style="padding:30px 40px;color:#F1F5F9;">
<p>Your Dead Man's Switch will trigger in <strong>{{ days_remaining }} days</strong> if you don't check in.</p>
<p>When triggered, <strong>{{ nominee_display }}</strong> will receive access to your Digital Legacy Vault.</p>
<p style="text-align:center;"><a href="{{ check_in_link }}">I'm Still Here - Check In Now</a></p>
</td></tr>
"""
    + _LAYOUT_CLOSE,
    "warning.txt": """Check-in Reminder

Your Dead Man's Switch will trigger in {{ days_remaining }} days if you don't check in.

When triggered, {{ nominee_display }} will receive access to your Digital Legacy Vault.

Check in now: {{ check_in_link }}
""",
    "final_warning.subject": "URGENT: Digital Legacy Vault - Final Warning",
    "final_warning.html": _LAYOUT_OPEN
    + """<tr><td style="padding:40px;text-align:center;">
<h1 style="color:#FB7185;font-size:24px;margin:0;">FINAL WARNING</h1></td></tr>
<tr><td style="padding:30px 40px;color:#F1F5F9;">
<p style="text-align:center;font-weight:600;">Only {{ days_remaining }} days remaining!</p>
<p>This is your <strong>final reminder</strong>. Your Dead Man's Switch will trigger soon and grant
<strong>{{ nominee_display }}</strong> access to your vault.</p>
<p style="text-align:center;"><a href="{{ check_in_link }}">Check In Now - Reset Timer</a></p>
</td></tr>
"""
    + _LAYOUT_CLOSE,
    "final_warning.txt": """FINAL WARNING

Only {{ days_remaining }} days remaining!

This is your final reminder. Your Dead Man's Switch will trigger soon and grant {{ nominee_display }} access to your vault.

Check in now: {{ check_in_link }}
""",
    "triggered.subject": "Digital Legacy Vault - You Have Been Granted Access",
    "triggered.html": _LAYOUT_OPEN
    + """<tr><td style="padding:40px;text-align:center;">
<h1 style="color:#F1F5F9;font-size:28px;margin:0;">Digital Legacy Vault</h1></td></tr>
<tr><td style="padding:30px 40px;color:#94A3B8;">
<p style="color:#F1F5F9;">Dear {{ nominee_name or "Trusted Person" }},</p>
<p>You have been designated as a trusted nominee for a Digital Legacy Vault belonging to
<strong>{{ owner_email }}</strong>.</p>
<p>Due to extended inactivity, the vault's Dead Man's Switch has been triggered, and you have been
granted access to their important information.</p>
{% if personal_message %}<blockquote style="border-left:4px solid #FB7185;padding:20px;color:#F1F5F9;">
"{{ personal_message }}"</blockquote>{% endif %}
<p style="text-align:center;"><a href="{{ access_link }}">Access the Vault</a></p>
<p style="text-align:center;font-size:13px;">This link will expire on {{ expires_on }}.</p>
<p style="color:#34D399;font-size:13px;">The vault contents are encrypted. You may need the master password
to decrypt the information.</p>
</td></tr>
"""
    + _LAYOUT_CLOSE,
    "triggered.txt": """Dear {{ nominee_name or "Trusted Person" }},

You have been designated as a trusted nominee for a Digital Legacy Vault belonging to {{ owner_email }}.

Due to extended inactivity, the vault's Dead Man's Switch has been triggered, and you have been granted access to their important information.
{% if personal_message %}
Personal Message: "{{ personal_message }}"
{% endif %}
Access the vault here: {{ access_link }}

This link will expire on {{ expires_on }}.

Security Note: The vault contents are encrypted. You may need the master password to decrypt the information.
""",
    "test.subject": "Digital Legacy Vault - Test Email Successful",
    "test.html": _LAYOUT_OPEN
    + """<tr><td style="padding:40px;text-align:center;">
<h1 style="color:#34D399;font-size:24px;margin:0;">Test Email Successful</h1></td></tr>
<tr><td style="padding:30px 40px;color:#94A3B8;">
<p style="color:#F1F5F9;">Hello {{ nominee_name or "there" }},</p>
<p>This is a test email from Digital Legacy Vault. <strong>{{ owner_email }}</strong> has designated you as
their trusted nominee.</p>
<p>If their Dead Man's Switch is ever triggered, you will receive an email with secure access to their vault.</p>
</td></tr>
"""
    + _LAYOUT_CLOSE,
    "test.txt": """Test Email Successful

Hello {{ nominee_name or "there" }},

This is a test email from Digital Legacy Vault. {{ owner_email }} has designated you as their trusted nominee.

If their Dead Man's Switch is ever triggered, you will receive an email with secure access to their vault.

This is only a test. No action is required.
""",
}

_env = Environment(
    loader=DictLoader(_TEMPLATES),
    autoescape=select_autoescape(enabled_extensions=("html",), default_for_string=False, default=False),
    undefined=StrictUndefined,
    keep_trailing_newline=True,
)

MESSAGE_KINDS = ("warning", "final_warning", "triggered", "test")


@dataclass(frozen=True)
class RenderedMessage:
    subject: str
    html: str
    text: str


def render_message(kind: str, **context) -> RenderedMessage:
    """Render subject, HTML and text bodies for one notification kind."""

    if kind not in MESSAGE_KINDS:
        raise ValueError(f"unknown message kind: {kind}")
    return RenderedMessage(
        subject=_env.get_template(f"{kind}.subject").render(**context).strip(),
        html=_env.get_template(f"{kind}.html").render(**context),
        text=_env.get_template(f"{kind}.txt").render(**context),
    )
