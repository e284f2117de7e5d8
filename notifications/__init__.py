"""Candidate notifications for stage progression."""
from .invitations import (
    InvitationEmail,
    LoggingNotifier,
    NotificationError,
    Notifier,
    ResendNotifier,
    StageInvitation,
    build_invitation_email,
    dispatch_stage_invitation,
    invitation_link,
    notifier_from_settings,
)

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
