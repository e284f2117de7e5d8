from __future__ import annotations  # Stage invitation emails

import html
import logging
import os
from typing import Any, Dict, List, Optional, Protocol

import httpx
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from config.settings import Settings
from llm_gateway import HttpClient
from observability import log_event

logger = logging.getLogger(__name__)


class NotificationError(RuntimeError):  # Delivery failure reported by the email provider
    pass


class StageInvitation(BaseModel):
    """Everything needed to invite a candidate to their next stage."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    candidate_email: str
    candidate_name: str
    session_id: str
    stage_order: int
    stage_name: str
    stage_description: str
    stage_type: str = "assessment"
    total_stages: int
    question_count: int = 0
    time_per_question_seconds: int = 0
    booked_slot: Optional[str] = None


class InvitationEmail(BaseModel):
    subject: str
    html: str
    link: Optional[str] = None


class Notifier(Protocol):
    def send_stage_invitation(self, invitation: StageInvitation) -> None: ...


_BUTTON_TEXT = {
    "assessment": "Start Assessment",
    "slot_booking": "Book Your Slot",
    "demo": "Start Demo Teaching",
    "feedback": "View Feedback",
    "hr_documents": "Start HR Round",
    "review": "View All Reviews",
}


def invitation_link(invitation: StageInvitation, app_url: str) -> Optional[str]:
    """Candidate-facing link for the stage; instruction emails carry none."""

    base = app_url.rstrip("/")
    if invitation.stage_type == "email_info":
        return None
    if invitation.stage_type == "demo":
        return f"{base}/candidate/demo-round?session={invitation.session_id}&stage={invitation.stage_order}"
    return f"{base}/candidate/mock-interview/{invitation.session_id}/{invitation.stage_order}"


def build_invitation_email(invitation: StageInvitation, app_url: str) -> InvitationEmail:
    link = invitation_link(invitation, app_url)
    subject = f"{invitation.stage_name} - Stage {invitation.stage_order} of {invitation.total_stages}"
    details: List[str] = [
        f"<li><strong>Stage:</strong> {html.escape(invitation.stage_name)} "
        f"(Stage {invitation.stage_order} of {invitation.total_stages})</li>"
    ]
    if invitation.question_count:
        details.append(f"<li><strong>Format:</strong> {invitation.question_count} Questions</li>")
    if invitation.time_per_question_seconds:
        details.append(f"<li><strong>Time:</strong> {invitation.time_per_question_seconds} seconds per question</li>")
    if invitation.booked_slot:
        details.append(f"<li><strong>Scheduled:</strong> {html.escape(invitation.booked_slot)}</li>")

    parts = [
        f"<p>Dear {html.escape(invitation.candidate_name)},</p>",
        f"<p>{html.escape(invitation.stage_description)}</p>",
        "<ul>" + "".join(details) + "</ul>",
    ]
    if link:
        button = _BUTTON_TEXT.get(invitation.stage_type, "Continue")
        parts.append(f'<p><a href="{html.escape(link, quote=True)}">{button} &rarr;</a></p>')
    parts.append("<p>Best of luck!</p>")
    return InvitationEmail(subject=subject, html="\n".join(parts), link=link)


class ResendNotifier:
    """Sends invitations through the Resend ``/emails`` endpoint."""

    def __init__(
        self,
        *,
        api_key: str,
        sender: str,
        app_url: str,
        base_url: str = "https://api.resend.com",
        timeout_s: float = 10.0,
        client: Optional[HttpClient] = None,
    ) -> None:
        self._api_key = api_key
        self._sender = sender
        self._app_url = app_url
        self._base_url = base_url.rstrip("/")
        self._timeout_s = timeout_s
        self._client = client

    def send_stage_invitation(self, invitation: StageInvitation) -> None:
        email = build_invitation_email(invitation, self._app_url)
        payload: Dict[str, Any] = {
            "from": self._sender,
            "to": [invitation.candidate_email],
            "subject": email.subject,
            "html": email.html,
        }
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        url = f"{self._base_url}/emails"
        try:
            if self._client is not None:
                response = self._client.post(url, json=payload, headers=headers, timeout=self._timeout_s)
            else:
                with httpx.Client(timeout=self._timeout_s) as http_client:
                    response = http_client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as exc:
            raise NotificationError(f"Resend request failed: {exc}") from exc
        if response.status_code >= 400:
            raise NotificationError(f"Resend API rejected the request (HTTP {response.status_code})")
        logger.info("Invitation sent to=%s stage=%s", invitation.candidate_email, invitation.stage_order)


class LoggingNotifier:
    """Fallback used when no email provider is configured: records the email instead of sending it."""

    def __init__(self, app_url: str) -> None:
        self._app_url = app_url
        self.sent: List[InvitationEmail] = []

    def send_stage_invitation(self, invitation: StageInvitation) -> None:
        email = build_invitation_email(invitation, self._app_url)
        self.sent.append(email)
        logger.info("Email delivery disabled; would send %r to %s", email.subject, invitation.candidate_email)


def notifier_from_settings(settings: Settings, *, client: Optional[HttpClient] = None) -> Notifier:
    api_key = (os.getenv(settings.RESEND_API_KEY_ENV) or "").strip()
    if not settings.NOTIFICATIONS_ENABLED or not api_key:
        return LoggingNotifier(settings.APP_URL)
    return ResendNotifier(
        api_key=api_key,
        sender=settings.EMAIL_FROM,
        app_url=settings.APP_URL,
        base_url=settings.RESEND_BASE_URL,
        timeout_s=settings.EMAIL_TIMEOUT_S,
        client=client,
    )


def dispatch_stage_invitation(notifier: Optional[Notifier], invitation: StageInvitation) -> bool:
    """Send one invitation; failures are logged and reported as False, never raised."""

    if notifier is None:
        return False
    try:
        notifier.send_stage_invitation(invitation)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Invitation delivery failed for session=%s: %s", invitation.session_id, exc)
        log_event(
            "notification_failed",
            invitation.session_id,
            level=logging.WARNING,
            stage_order=invitation.stage_order,
            error=str(exc),
        )
        return False
    return True


__all__ = [
    "InvitationEmail",
    "LoggingNotifier",
    "NotificationError",
    "Notifier",
    "ResendNotifier",
    "StageInvitation",
    "build_invitation_email",
    "dispatch_stage_invitation",
    "invitation_link",
    "notifier_from_settings",
]
