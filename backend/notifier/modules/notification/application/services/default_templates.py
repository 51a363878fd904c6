"""Built-in notification templates.

Two families live here: the generic per-channel templates synthesized for an
event that has no active template, and the ready-made templates for the
account events the platform emits, used to seed an empty repository.
"""

from dataclasses import dataclass

from notifier.modules.notification.domain.entities import NotificationTemplate
from notifier.modules.notification.domain.enums import NotificationChannel

GENERIC_TITLE = "🔔 Event: {event_key}"

GENERIC_CONTENT: dict[NotificationChannel, str] = {
    NotificationChannel.EMAIL: """SUBJECT: 🔔 Event: {{ eventKey }}
---
<h2>Event notification</h2>
<p><strong>Event:</strong> {{ eventKey }}</p>
<p><strong>Date:</strong> {{ timestamp }}</p>
<p><strong>Data:</strong></p>
<pre>{{ data | json(2) }}</pre>""",
    NotificationChannel.PUSH: """TITLE: 🔔 {{ eventKey }}
BODY: Event received at {{ timestamp }}
---
{{ data | json }}""",
    NotificationChannel.REALTIME: """{
  "event": "{{ eventKey }}",
  "timestamp": "{{ timestamp }}",
  "data": {{ data | json }}
}""",
}


def build_generic_templates(
    event_key: str, channels: list[NotificationChannel] | None = None
) -> list[NotificationTemplate]:
    """Synthesize one fallback template per channel.

    Synthesized templates are never persisted and skip entity validation.
    """
    return [
        NotificationTemplate(
            event_key=event_key,
            channel=channel,
            title=GENERIC_TITLE.format(event_key=event_key),
            content=GENERIC_CONTENT[channel],
            validate=False,
        )
        for channel in channels or list(NotificationChannel)
    ]


@dataclass(frozen=True)
class DefaultTemplateDefinition:
    """A built-in template that can be seeded into the repository."""

    event_key: str
    channel: NotificationChannel
    title: str
    content: str
    is_active: bool = True


_EMAIL_LAYOUT = """<!DOCTYPE html>
<html>
<head><meta charset="UTF-8"><title>{title}</title></head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
<div style="max-width: 600px; margin: 0 auto; padding: 20px;">
{body}
</div>
</body>
</html>"""


def _email(subject: str, title: str, body: str) -> str:
    return f"SUBJECT: {subject}\n---\n" + _EMAIL_LAYOUT.format(title=title, body=body)


def _realtime(event_key: str, fields: list[str]) -> str:
    data = ",\n".join(f'    "{name}": "{{{{ data.{name} }}}}"' for name in fields)
    return (
        "{\n"
        f'  "event": "{event_key}",\n'
        '  "timestamp": "{{ timestamp }}",\n'
        '  "user": {"id": "{{ user.id }}", "name": "{{ user.name }}", '
        '"email": "{{ user.email }}"},\n'
        '  "data": {\n'
        f"{data}\n"
        "  }\n"
        "}"
    )


DEFAULT_TEMPLATES_BY_EVENT: dict[str, list[DefaultTemplateDefinition]] = {
    "EMAIL_VERIFICATION": [
        DefaultTemplateDefinition(
            event_key="EMAIL_VERIFICATION",
            channel=NotificationChannel.EMAIL,
            title="✉️ Email verification",
            content=_email(
                "✉️ Verify your email address",
                "Email verification",
                """<h1>Welcome!</h1>
<p>Hi <strong>{{ data.userName }}</strong>,</p>
<p>Thanks for signing up. Please confirm your email address to finish creating your account.</p>
<p><a href="{{ data.verificationUrl }}">Verify email</a></p>
<p>If the button does not work, paste this link into your browser: {{ data.verificationUrl }}</p>
<p>Need help? <a href="{{ data.supportUrl }}">Contact support</a></p>""",
            ),
        ),
        DefaultTemplateDefinition(
            event_key="EMAIL_VERIFICATION",
            channel=NotificationChannel.PUSH,
            title="✉️ Email verification",
            content="""TITLE: ✉️ Verify your email
BODY: Tap to verify your email address
---
{"url": "{{ data.verificationUrl }}", "type": "email_verification"}""",
        ),
        DefaultTemplateDefinition(
            event_key="EMAIL_VERIFICATION",
            channel=NotificationChannel.REALTIME,
            title="Email verification event",
            content=_realtime("EMAIL_VERIFICATION", ["userName", "verificationUrl"]),
        ),
    ],
    "PASSWORD_RESET": [
        DefaultTemplateDefinition(
            event_key="PASSWORD_RESET",
            channel=NotificationChannel.EMAIL,
            title="🔐 Password reset",
            content=_email(
                "🔐 Reset your password",
                "Password reset",
                """<h1>Reset your password</h1>
<p>Hi <strong>{{ data.userName }}</strong>,</p>
<p>We received a request to reset the password of your account.</p>
<p><a href="{{ data.resetUrl }}">Reset password</a></p>
<p>This link is valid until <strong>{{ data.expiresAt }}</strong>. Never share it with anyone.</p>
<p>If you did not request a reset you can safely ignore this email.</p>""",
            ),
        ),
        DefaultTemplateDefinition(
            event_key="PASSWORD_RESET",
            channel=NotificationChannel.PUSH,
            title="🔐 Password reset",
            content="""TITLE: 🔐 Password reset requested
BODY: Tap to reset your password
---
{"url": "{{ data.resetUrl }}", "type": "password_reset", "expiresAt": "{{ data.expiresAt }}"}""",
        ),
        DefaultTemplateDefinition(
            event_key="PASSWORD_RESET",
            channel=NotificationChannel.REALTIME,
            title="Password reset event",
            content=_realtime("PASSWORD_RESET", ["userName", "resetUrl", "expiresAt"]),
        ),
    ],
    "PASSWORD_CHANGED": [
        DefaultTemplateDefinition(
            event_key="PASSWORD_CHANGED",
            channel=NotificationChannel.EMAIL,
            title="🔒 Password changed",
            content=_email(
                "🔒 Your password was changed",
                "Password changed",
                """<h1>Your password was changed</h1>
<p>Hi <strong>{{ data.userName }}</strong>,</p>
<p>The password of your account was changed on {{ data.changeDate }} at {{ data.changeTime }}.</p>
<ul>
<li>IP address: {{ data.ipAddress }}</li>
<li>Device: {{ data.device }}</li>
</ul>
<p>If this was not you, <a href="{{ data.securityUrl }}">secure your account</a> now.</p>""",
            ),
        ),
        DefaultTemplateDefinition(
            event_key="PASSWORD_CHANGED",
            channel=NotificationChannel.PUSH,
            title="🔒 Password changed",
            content="""TITLE: 🔒 Password changed
BODY: Your password was changed on {{ data.changeDate }} at {{ data.changeTime }}
---
{"url": "{{ data.securityUrl }}", "type": "password_changed"}""",
        ),
        DefaultTemplateDefinition(
            event_key="PASSWORD_CHANGED",
            channel=NotificationChannel.REALTIME,
            title="Password changed event",
            content=_realtime(
                "PASSWORD_CHANGED",
                ["userName", "changeDate", "changeTime", "ipAddress", "device"],
            ),
        ),
    ],
    "DATA_CHANGED": [
        DefaultTemplateDefinition(
            event_key="DATA_CHANGED",
            channel=NotificationChannel.EMAIL,
            title="📝 Account data changed",
            content=_email(
                "📝 Your account data was changed",
                "Account data changed",
                """<h1>Your account data was changed</h1>
<p>Hi <strong>{{ data.userName }}</strong>,</p>
<p>The following changes were made on {{ data.changeDate }} at {{ data.changeTime }}:</p>
<ul>
{% for change in data.changes %}
<li>{{ change.field }}: {{ change.oldValue }} &rarr; {{ change.newValue }}</li>
{% endfor %}
</ul>
<p>IP address: {{ data.ipAddress }}, device: {{ data.device }}</p>
<p>If this was not you, <a href="{{ data.securityUrl }}">secure your account</a>
or <a href="{{ data.supportUrl }}">contact support</a>.</p>""",
            ),
        ),
        DefaultTemplateDefinition(
            event_key="DATA_CHANGED",
            channel=NotificationChannel.PUSH,
            title="📝 Account data changed",
            content="""TITLE: 📝 Account data changed
BODY: Your data was changed on {{ data.changeDate }} at {{ data.changeTime }}
---
{"type": "data_changed", "changesCount": {{ data.changes | length }}}""",
        ),
        DefaultTemplateDefinition(
            event_key="DATA_CHANGED",
            channel=NotificationChannel.REALTIME,
            title="Data changed event",
            content="""{
  "event": "DATA_CHANGED",
  "timestamp": "{{ timestamp }}",
  "user": {"id": "{{ user.id }}", "name": "{{ user.name }}", "email": "{{ user.email }}"},
  "data": {
    "userName": "{{ data.userName }}",
    "changes": {{ data.changes | json }},
    "ipAddress": "{{ data.ipAddress }}",
    "device": "{{ data.device }}"
  }
}""",
        ),
    ],
    "USER_REGISTERED": [
        DefaultTemplateDefinition(
            event_key="USER_REGISTERED",
            channel=NotificationChannel.EMAIL,
            title="🎉 Welcome aboard",
            content=_email(
                "🎉 Welcome, {{ data.userName }}!",
                "Welcome",
                """<h1>Welcome, {{ data.userName }}!</h1>
<p>Your account is ready. <a href="{{ data.loginUrl }}">Sign in</a> to get started.</p>""",
            ),
        ),
        DefaultTemplateDefinition(
            event_key="USER_REGISTERED",
            channel=NotificationChannel.PUSH,
            title="🎉 Welcome aboard",
            content="""TITLE: 🎉 Welcome, {{ data.userName }}
BODY: Your account is ready
---
{"url": "{{ data.loginUrl }}", "type": "user_registered"}""",
        ),
        DefaultTemplateDefinition(
            event_key="USER_REGISTERED",
            channel=NotificationChannel.REALTIME,
            title="User registered event",
            content=_realtime("USER_REGISTERED", ["userName", "loginUrl"]),
        ),
    ],
}

DEFAULT_TEMPLATES: list[DefaultTemplateDefinition] = [
    definition
    for definitions in DEFAULT_TEMPLATES_BY_EVENT.values()
    for definition in definitions
]
