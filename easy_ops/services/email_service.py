# easy_ops/services/email_service.py
import logging
from datetime import date
from smtplib import SMTP, SMTPException
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from email.utils import formataddr
from easy_ops.core.config import settings

logger = logging.getLogger(__name__)

class EmailService:

    @staticmethod
    def send_email(to_email: str, subject: str, text_content: str, html_content: str = None):
        try:
            msg = MIMEMultipart("alternative")
            msg['From'] = formataddr((settings.EMAIL_FROM_NAME, settings.EMAIL_FROM))
            msg['To'] = to_email
            msg['Subject'] = subject
            msg.attach(MIMEText(text_content, 'plain'))
            if html_content:
                msg.attach(MIMEText(html_content, 'html'))

            with SMTP(settings.SMTP_SERVER, settings.SMTP_PORT) as smtp:
                smtp.starttls()
                smtp.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
                smtp.send_message(msg)
        except (SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to_email}: {str(e)}")
            raise

    @staticmethod
    def send_reminder_email(to_email: str, label: str, target_date: date, today: date, item_name: str = None):
        """Returns False when SMTP is not configured and the message was only logged"""
        days_until = (target_date - today).days
        when = "Due Today/Overdue" if days_until <= 0 else f"In {days_until} days"
        subject = f"Reminder: {label} for {item_name}" if item_name else f"Reminder: {label}"
        text = (
            "Hello Manager,\n\n"
            "This is a reminder for the following date:\n\n"
            + (f"Item: {item_name}\n" if item_name else "")
            + f"Event: {label}\n"
            f"Date: {target_date.isoformat()} ({when})\n\n"
            "Please take necessary action.\n\n"
            f"- {settings.EMAIL_FROM_NAME}\n"
        )

        if not settings.SMTP_USERNAME or not settings.SMTP_PASSWORD:
            logger.info(f"SMTP credentials missing; reminder not mailed. To: {to_email} | Subject: {subject}")
            return False

        EmailService.send_email(to_email, subject, text)
        return True
