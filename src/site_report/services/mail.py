"""SMTP delivery of finished report PDFs."""

import smtplib
from email.message import EmailMessage
from pathlib import Path
from typing import Optional, Protocol

from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from ..config import get_settings
from ..errors import CollaboratorError
from ..log import get_logger

logger = get_logger("mail")

class Mailer(Protocol):
    def send(self, address: str, file_path: str, subject: str = "", body: str = "") -> None:
        ...

class SmtpMailer:
    def __init__(
        self,
        host: Optional[str] = None,
        port: Optional[int] = None,
        user: Optional[str] = None,
        password: Optional[str] = None,
    ):
        settings = get_settings()
        self.host = host or settings.SMTP_HOST
        self.port = port or settings.SMTP_PORT
        self.user = user or settings.EMAIL_USER
        self.password = password or settings.EMAIL_PASS

    def build_message(self, address: str, file_path: str, subject: str, body: str) -> EmailMessage:
        path = Path(file_path)
        msg = EmailMessage()
        msg["From"] = self.user or ""
        msg["To"] = address
        msg["Subject"] = subject
        msg.set_content(body)
        msg.add_attachment(path.read_bytes(), maintype="application", subtype="pdf", filename=path.name)
        return msg

    @retry(
        retry=retry_if_exception_type(smtplib.SMTPServerDisconnected),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True
    )
    def _deliver(self, msg: EmailMessage):
        with smtplib.SMTP(self.host, self.port, timeout=30) as smtp:
            smtp.starttls()
            if self.user and self.password:
                smtp.login(self.user, self.password)
            smtp.send_message(msg)

    def send(self, address: str, file_path: str, subject: str = "Property Report", body: str = "") -> None:
        try:
            msg = self.build_message(address, file_path, subject, body)
            self._deliver(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send report to {address}: {e}")
            raise CollaboratorError.wrap("mail", "send", e) from e
        logger.info(f"Report {Path(file_path).name} sent to {address}")
