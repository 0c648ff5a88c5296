# core/mailer.py
"""
Outbound mail collaborator.

Builds RFC-compliant MIME messages and hands them to the configured SMTP relay
with aiosmtplib. Port 465 uses implicit TLS, port 587 upgrades with STARTTLS.
"""

import asyncio
import logging
import mimetypes
import uuid
from dataclasses import dataclass
from email import encoders
from email.errors import MessageError
from email.mime.base import MIMEBase
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, formatdate
from typing import Iterable, Optional, Sequence

import aiosmtplib

from core.errors import MailDeliveryError

logger = logging.getLogger(__name__)


@dataclass
class Attachment:
    """File content attached to an outgoing message"""
    filename: str
    content: bytes
    content_type: Optional[str] = None


class Mailer:

    def __init__(self,
                 host: str,
                 port: int,
                 username: Optional[str] = None,
                 password: Optional[str] = None,
                 from_name: Optional[str] = None,
                 timeout: int = 30):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_name = from_name
        self.timeout = timeout

    @classmethod
    def from_config(cls, config) -> 'Mailer':
        return cls(
            host=config['MAIL_HOST'],
            port=config['MAIL_PORT'],
            username=config.get('MAIL_USERNAME'),
            password=config.get('MAIL_PASSWORD'),
            from_name=config.get('MAIL_FROM_NAME'),
            timeout=config.get('MAIL_TIMEOUT', 30),
        )

    @property
    def sender(self) -> Optional[str]:
        return self.username

    def build_message(self,
                      subject: str,
                      to: Sequence[str],
                      html: str,
                      text: Optional[str] = None,
                      reply_to: Optional[str] = None,
                      attachments: Iterable[Attachment] = ()) -> MIMEMultipart:
        """
        Compose a multipart message with plain-text and HTML alternatives.

        Every address in `to` is listed in the single To header.
        """
        attachments = list(attachments)

        body = MIMEMultipart('alternative')
        if text:
            body.attach(MIMEText(text, 'plain', 'utf-8'))
        body.attach(MIMEText(html, 'html', 'utf-8'))

        if attachments:
            msg = MIMEMultipart('mixed')
            msg.attach(body)
            for attachment in attachments:
                msg.attach(self._attachment_part(attachment))
        else:
            msg = body

        msg['Subject'] = subject
        if self.sender:
            msg['From'] = formataddr((self.from_name, self.sender)) if self.from_name else self.sender
        msg['To'] = ', '.join(to)
        msg['Date'] = formatdate(localtime=True)
        domain = self.sender.split('@')[-1] if self.sender and '@' in self.sender else 'localhost'
        msg['Message-ID'] = f"<{uuid.uuid4()}@{domain}>"
        if reply_to:
            msg['Reply-To'] = reply_to

        return msg

    @staticmethod
    def _attachment_part(attachment: Attachment) -> MIMEBase:
        content_type = (attachment.content_type
                        or mimetypes.guess_type(attachment.filename)[0]
                        or 'application/octet-stream')
        maintype, _, subtype = content_type.partition('/')
        part = MIMEBase(maintype, subtype or 'octet-stream')
        part.set_payload(attachment.content)
        encoders.encode_base64(part)
        part.add_header('Content-Disposition', 'attachment', filename=attachment.filename)
        return part

    def send(self, msg: MIMEMultipart) -> None:
        """
        Deliver a message synchronously.

        Raises:
            MailDeliveryError: connection, authentication or delivery failed
        """
        try:
            asyncio.run(self._send(msg))
        except (aiosmtplib.SMTPException, MessageError, OSError, asyncio.TimeoutError) as e:
            logger.error(f"SMTP delivery to {msg['To']} failed: {e}")
            raise MailDeliveryError(str(e)) from e

        logger.info(f"Email '{msg['Subject']}' delivered to {msg['To']}")

    def _client(self) -> aiosmtplib.SMTP:
        return aiosmtplib.SMTP(
            hostname=self.host,
            port=self.port,
            timeout=self.timeout,
            use_tls=self.port == 465,
            start_tls=True if self.port == 587 else None,
        )

    async def _send(self, msg: Optional[MIMEMultipart]) -> None:
        smtp = self._client()
        await smtp.connect()
        try:
            if self.username and self.password:
                await smtp.login(self.username, self.password)
            if msg is not None:
                await smtp.send_message(msg)
        finally:
            if smtp.is_connected:
                await smtp.quit()

    def verify(self) -> bool:
        """Check that the relay accepts a connection and our credentials"""
        try:
            asyncio.run(self._send(None))
        except (aiosmtplib.SMTPException, MessageError, OSError, asyncio.TimeoutError) as e:
            logger.error(f"Error connecting to email server: {e}")
            return False

        logger.info("Email server connection is ready")
        return True
