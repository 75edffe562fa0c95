from __future__ import annotations
import smtplib
from email.message import EmailMessage
from typing import Iterable, List, Protocol

from shopdesk.core.models import EMAIL_JOBS
from shopdesk.infra.db_interface import DocumentStore
from shopdesk.utils.exceptions import NotFoundError, ValidationError
from shopdesk.utils.logging import get_logger

logger = get_logger("newsletter")


class EmailSender(Protocol):
    def send(self, to: str, subject: str, html: str) -> None: ...


class SmtpEmailSender:
    """SMTP over SSL, one connection per message."""

    def __init__(self, host: str, port: int, username: str, password: str, sender_name: str = ""):
        self.host = host
        self.port = int(port)
        self.username = username
        self.password = password
        self.sender_name = sender_name

    def send(self, to: str, subject: str, html: str) -> None:
        msg = EmailMessage()
        msg["From"] = f"{self.sender_name} <{self.username}>" if self.sender_name else self.username
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content("This newsletter is best viewed in an HTML-capable mail client.")
        msg.add_alternative(html, subtype="html")
        with smtplib.SMTP_SSL(self.host, self.port, timeout=30) as smtp:
            if self.username:
                smtp.login(self.username, self.password)
            smtp.send_message(msg)


def _batches(items: List[str], size: int) -> Iterable[List[str]]:
    for i in range(0, len(items), size):
        yield items[i:i + size]


class NewsletterService:
    def __init__(self, store: DocumentStore, sender: EmailSender, batch_size: int = 5):
        self.store = store
        self.sender = sender
        self.batch_size = max(1, int(batch_size))

    def _deliver(self, emails: List[str], subject: str, html: str) -> dict:
        sent, failed = 0, []
        for batch in _batches(emails, self.batch_size):
            for email in batch:
                try:
                    self.sender.send(email, subject, html)
                    sent += 1
                except (smtplib.SMTPException, OSError) as e:
                    # one bad address must not stop the rest of the job
                    logger.error(f"Failed to send to {email}: {e}")
                    failed.append(email)
        return {"sent": sent, "failed": failed}

    def send(self, subject: str | None, content: str | None, recipients) -> dict:
        if not subject or not content or not recipients:
            raise ValidationError("Missing fields: subject, content, and recipients are required")
        if isinstance(recipients, str):
            recipients = [r.strip() for r in recipients.split(",") if r.strip()]
        result = self._deliver(list(recipients), subject, content)
        logger.info(f"newsletter '{subject}': sent={result['sent']} failed={len(result['failed'])}")
        return result

    def process_job(self, job_id: str | None) -> dict:
        if not job_id:
            raise ValidationError("Job ID is required")
        job = self.store.get(EMAIL_JOBS, job_id)
        if job is None:
            raise NotFoundError("Job not found")
        result = self._deliver(list(job.get("emails") or []), job.get("subject", ""),
                               job.get("htmlContent", ""))
        self.store.update(EMAIL_JOBS, job_id, {"status": "completed", "sent": result["sent"],
                                                "failed": result["failed"]})
        logger.info(f"email job {job_id} completed: sent={result['sent']} failed={len(result['failed'])}")
        return result
