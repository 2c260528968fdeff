"""
Service d'emails SendGrid pour SalesDesk CRM
- Alertes critiques immédiates (échecs scheduler, base injoignable)
- Rappels de présence quotidiens

Sans SENDGRID_API_KEY: rien n'est envoyé, chaque méthode renvoie False.
"""

import os
import logging
from datetime import datetime, timezone
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail, Email, To, Content

logger = logging.getLogger("email_service")

SENDGRID_API_KEY = os.environ.get('SENDGRID_API_KEY', '')
ALERT_EMAIL = os.environ.get('ALERT_EMAIL', '')
SENDER_EMAIL = os.environ.get('SENDER_EMAIL', 'noreply@salesdesk-crm.local')
APP_URL = os.environ.get('APP_URL', 'http://localhost:3000')

ALERT_COLOR = "#DC2626"
REMINDER_COLOR = "#3B82F6"


def render_layout(title: str, color: str, body: str) -> str:
    """Gabarit HTML commun: bandeau coloré + contenu"""
    return f"""
    <!DOCTYPE html>
    <html>
    <body style="font-family: Arial, sans-serif; background: #F8FAFC; padding: 24px;">
        <table role="presentation" width="600" align="center" style="background: white; border-radius: 8px;">
            <tr><td style="background: {color}; color: white; padding: 18px; text-align: center;">
                <h2 style="margin: 0;">{title}</h2>
            </td></tr>
            <tr><td style="padding: 24px;">{body}</td></tr>
            <tr><td style="padding: 12px; color: #94A3B8; font-size: 12px; text-align: center;">SalesDesk CRM</td></tr>
        </table>
    </body>
    </html>
    """


class EmailService:

    def __init__(self, api_key: str = None, sender: str = None, alert_recipient: str = None):
        self.api_key = SENDGRID_API_KEY if api_key is None else api_key
        self.sender = sender or SENDER_EMAIL
        self.alert_recipient = ALERT_EMAIL if alert_recipient is None else alert_recipient

    def _send_email(self, to_email: str, subject: str, html_content: str) -> bool:
        if not self.api_key:
            logger.error(f"[EMAIL_SKIPPED] to={to_email} reason=missing_api_key")
            return False

        message = Mail(
            from_email=Email(self.sender, "SalesDesk CRM"),
            to_emails=To(to_email),
            subject=subject,
            html_content=Content("text/html", html_content),
        )
        try:
            response = SendGridAPIClient(self.api_key).send(message)
        except Exception as e:
            logger.error(f"[EMAIL_FAILED] to={to_email} error={str(e)}")
            return False

        if response.status_code not in (200, 202):
            logger.error(f"[EMAIL_FAILED] to={to_email} status={response.status_code}")
            return False

        logger.info(f"[EMAIL_SENT] to={to_email} subject={subject}")
        return True

    # ==================== ALERTES ====================

    def send_critical_alert(self, alert_type: str, message: str, details: dict = None) -> bool:
        """Types utilisés: SCHEDULER_ERROR, DATA_ACCESS"""
        if not self.alert_recipient:
            logger.warning(f"[ALERT_SKIPPED] type={alert_type} reason=no_recipient")
            return False

        rows = "".join(
            f"<li><strong>{key}</strong>: {value}</li>" for key, value in (details or {}).items()
        )
        body = (
            f"<p style='color: #64748B;'>{datetime.now(timezone.utc).strftime('%d/%m/%Y %H:%M:%S')} UTC</p>"
            f"<p><strong>{alert_type}</strong></p>"
            f"<p>{message}</p>"
            + (f"<ul>{rows}</ul>" if rows else "")
        )
        return self._send_email(
            self.alert_recipient,
            f"[SalesDesk] Critical alert: {alert_type}",
            render_layout("Critical alert", ALERT_COLOR, body),
        )

    # ==================== PRÉSENCE ====================

    def send_attendance_reminder(self, to_email: str, name: str = None) -> bool:
        body = (
            f"<p>Hi {name or 'Team Member'},</p>"
            "<p>We have not received your attendance for today yet. "
            "Please submit it before the end of the day.</p>"
            f"<p><a href='{APP_URL}/attendance' style='background: {REMINDER_COLOR}; color: white; "
            "padding: 10px 18px; border-radius: 4px; text-decoration: none;'>Submit attendance</a></p>"
        )
        return self._send_email(
            to_email,
            "Reminder: Please submit today's attendance",
            render_layout("Attendance reminder", REMINDER_COLOR, body),
        )


email_service = EmailService()
