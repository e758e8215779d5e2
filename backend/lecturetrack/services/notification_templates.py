"""
Gabarits des notifications (email, SMS, in-app).

Quatre gabarits nommés : rappel de séance, demande de vérification, mise à jour
du statut d'une vérification, alerte d'escalade. Si l'événement n'a pas de gabarit
ou si une donnée requise manque, le rendu retombe sur le titre + message génériques.
"""

import logging
import uuid
from html import escape
from typing import Any, Dict, Optional

from pydantic import BaseModel

from lecturetrack.enums import Channel, NotificationTemplate
from lecturetrack.schemas.notification import NotificationEvent
from lecturetrack.services.sms_service import truncate_sms

logger = logging.getLogger(__name__)

FOOTER = "This is an automated message from the UPSA Attendance Management System."

REQUIRED_KEYS = {
    NotificationTemplate.ATTENDANCE_REMINDER: ("course_name", "session_time", "location", "session_type"),
    NotificationTemplate.VERIFICATION_REQUEST: (
        "class_rep_name", "course_name", "class_group", "session_date", "location", "verification_url",
    ),
    NotificationTemplate.VERIFICATION_STATUS_UPDATE: ("course_name", "session_date", "status", "dashboard_url"),
    NotificationTemplate.ESCALATION_ALERT: ("course_name", "issue_type", "reporter_name", "details"),
}

STATUS_COLORS = {"approved": "#059669", "rejected": "#dc2626"}


class Recipient(BaseModel):
    """Coordonnées d'un destinataire, résolues avant l'envoi."""
    id: uuid.UUID
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None


class EmailContent(BaseModel):
    subject: str
    html: str
    text: str


class SmsContent(BaseModel):
    body: str


class InAppContent(BaseModel):
    title: str
    message: str
    action_url: Optional[str] = None


def _template_data(event: NotificationEvent) -> Optional[Dict[str, Any]]:
    """Retourne les données du gabarit si toutes les clés requises sont présentes."""
    if event.template is None:
        return None
    data = event.template_data
    missing = [key for key in REQUIRED_KEYS[event.template] if data.get(key) in (None, "")]
    if missing:
        logger.warning(
            "Gabarit %s incomplet (%s manquant), rendu générique utilisé",
            event.template.value, ", ".join(missing),
        )
        return None
    return data


def _layout(heading: str, greeting_name: str, body_html: str, button_label: str = "", url: str = "") -> str:
    button = ""
    if url:
        button = (
            f'<a href="{escape(url)}" style="display: inline-block; background-color: #3b82f6; color: white; '
            f'padding: 12px 24px; text-decoration: none; border-radius: 6px; margin: 20px 0;">'
            f"{escape(button_label)}</a>"
        )
    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
      <h2 style="color: #1f2937;">{escape(heading)}</h2>
      <p>Dear {escape(greeting_name)},</p>
      {body_html}
      {button}
      <p style="color: #6b7280; font-size: 14px; margin-top: 30px;">{FOOTER}</p>
    </div>
    """


def _details(rows) -> str:
    lines = "".join(f"<p><strong>{escape(label)}:</strong> {value}</p>" for label, value in rows)
    return (
        '<div style="background-color: #f3f4f6; padding: 20px; border-radius: 8px; margin: 20px 0;">'
        f'<h3 style="margin-top: 0; color: #374151;">Session Details</h3>{lines}</div>'
    )


# ----------------------------------------------------------------
# Email
# ----------------------------------------------------------------

def render_email(event: NotificationEvent, recipient: Recipient) -> EmailContent:
    data = _template_data(event)
    name = recipient.name

    if data is not None and event.template == NotificationTemplate.VERIFICATION_REQUEST:
        html = _layout(
            "Attendance Verification Required",
            name,
            "<p>A class representative has submitted an attendance verification request for your session:</p>"
            + _details([
                ("Course", escape(str(data["course_name"]))),
                ("Class Group", escape(str(data["class_group"]))),
                ("Date & Time", escape(str(data["session_date"]))),
                ("Location", escape(str(data["location"]))),
                ("Submitted by", escape(str(data["class_rep_name"]))),
            ]),
            "Review Verification Request",
            data["verification_url"],
        )
        text = (
            f"Attendance Verification Required\n\nDear {name},\n\n"
            "A class representative has submitted an attendance verification request for your session:\n"
            f"Course: {data['course_name']}\nClass Group: {data['class_group']}\n"
            f"Date & Time: {data['session_date']}\nLocation: {data['location']}\n"
            f"Submitted by: {data['class_rep_name']}\n\n"
            f"Please review and respond to this verification request: {data['verification_url']}\n\n{FOOTER}"
        )
        return EmailContent(subject=f"Attendance Verification Required - {data['course_name']}", html=html, text=text)

    if data is not None and event.template == NotificationTemplate.VERIFICATION_STATUS_UPDATE:
        status = str(data["status"])
        color = STATUS_COLORS.get(status, "#d97706")
        rows = [
            ("Course", escape(str(data["course_name"]))),
            ("Date & Time", escape(str(data["session_date"]))),
            ("Status", f'<span style="color: {color}; font-weight: bold;">{escape(status.upper())}</span>'),
        ]
        if data.get("review_notes"):
            rows.append(("Review Notes", escape(str(data["review_notes"]))))
        html = _layout(
            f"Verification Request {status.capitalize()}",
            name,
            f"<p>Your attendance verification request has been <strong>{escape(status)}</strong>:</p>" + _details(rows),
            "View Dashboard",
            data["dashboard_url"],
        )
        notes = f"Review Notes: {data['review_notes']}\n" if data.get("review_notes") else ""
        text = (
            f"Verification Request {status.capitalize()}\n\nDear {name},\n\n"
            f"Your attendance verification request has been {status}:\n"
            f"Course: {data['course_name']}\nDate & Time: {data['session_date']}\n"
            f"Status: {status.upper()}\n{notes}\n"
            f"View your dashboard: {data['dashboard_url']}\n\n{FOOTER}"
        )
        return EmailContent(subject=f"Verification {status.capitalize()} - {data['course_name']}", html=html, text=text)

    if data is not None and event.template == NotificationTemplate.ATTENDANCE_REMINDER:
        html = _layout(
            "Upcoming Class Session",
            name,
            f"<p>This is a reminder for your upcoming {escape(str(data['session_type']).lower())} session:</p>"
            + _details([
                ("Course", escape(str(data["course_name"]))),
                ("Time", escape(str(data["session_time"]))),
                ("Location", escape(str(data["location"]))),
            ]),
            "Open Dashboard" if event.action_url else "",
            event.action_url or "",
        )
        text = (
            f"Upcoming Class Session\n\nDear {name},\n\n"
            f"Reminder: {data['course_name']} {str(data['session_type']).lower()} session "
            f"at {data['session_time']} in {data['location']}.\n\n{FOOTER}"
        )
        return EmailContent(subject=f"Upcoming Class Session - {data['course_name']}", html=html, text=text)

    if data is not None and event.template == NotificationTemplate.ESCALATION_ALERT:
        html = _layout(
            f"Escalation Alert - {data['issue_type']}",
            name,
            f"<p><strong>{escape(str(data['issue_type']))}</strong> reported for "
            f"<strong>{escape(str(data['course_name']))}</strong> by {escape(str(data['reporter_name']))}. "
            "Immediate attention required.</p>"
            f'<div style="background-color: #fef2f2; padding: 20px; border-radius: 8px; margin: 20px 0;">'
            f"<p>{escape(str(data['details']))}</p></div>",
            "Review Escalation" if event.action_url else "",
            event.action_url or "",
        )
        text = (
            f"Escalation Alert - {data['issue_type']}\n\nDear {name},\n\n"
            f"{data['issue_type']} reported for {data['course_name']} by {data['reporter_name']}. "
            f"Immediate attention required.\n\n{data['details']}\n\n{FOOTER}"
        )
        return EmailContent(subject=f"Escalation Alert - {data['issue_type']}", html=html, text=text)

    html = _layout(
        event.title,
        name,
        '<div style="background-color: #f3f4f6; padding: 20px; border-radius: 8px; margin: 20px 0;">'
        f"<p>{escape(event.message)}</p></div>",
        "Take Action" if event.action_url else "",
        event.action_url or "",
    )
    return EmailContent(subject=event.title, html=html, text=event.message)


# ----------------------------------------------------------------
# SMS
# ----------------------------------------------------------------

def render_sms(event: NotificationEvent) -> SmsContent:
    data = _template_data(event)
    body = event.message

    if data is not None and event.template == NotificationTemplate.VERIFICATION_REQUEST:
        body = (
            f"URGENT: Attendance verification required for {data['course_name']} on {data['session_date']}. "
            "Please check your email or dashboard."
        )
    elif data is not None and event.template == NotificationTemplate.VERIFICATION_STATUS_UPDATE:
        status = str(data["status"])
        if status == "approved":
            body = (
                f"Your attendance verification for {data['course_name']} on {data['session_date']} "
                "has been APPROVED. Thank you for your diligence."
            )
        elif status == "rejected":
            body = (
                f"Your attendance verification for {data['course_name']} on {data['session_date']} "
                "has been REJECTED. Please check your email for details and next steps."
            )
        else:
            body = (
                f"Your attendance verification for {data['course_name']} on {data['session_date']} "
                f"is now {status.upper()}. Check your dashboard."
            )
    elif data is not None and event.template == NotificationTemplate.ATTENDANCE_REMINDER:
        body = (
            f"Reminder: {data['course_name']} class at {data['session_time']} in {data['location']}. "
            "Please arrive on time."
        )
    elif data is not None and event.template == NotificationTemplate.ESCALATION_ALERT:
        body = (
            f"ESCALATION: {data['issue_type']} reported for {data['course_name']} by {data['reporter_name']}. "
            "Immediate attention required. Check dashboard."
        )

    return SmsContent(body=truncate_sms(body))


# ----------------------------------------------------------------
# In-app
# ----------------------------------------------------------------

def render_in_app(event: NotificationEvent) -> InAppContent:
    """Le titre et le message de l'événement sont déjà rédigés pour l'affichage in-app."""
    return InAppContent(title=event.title, message=event.message, action_url=event.action_url)


def render_for_channel(channel: Channel, event: NotificationEvent, recipient: Recipient):
    if channel == Channel.EMAIL:
        return render_email(event, recipient)
    if channel == Channel.SMS:
        return render_sms(event)
    return render_in_app(event)
