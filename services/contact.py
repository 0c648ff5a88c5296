# services/contact.py
"""
Contact form submission: token check, email composition and delivery.
"""

import logging
import os
import uuid
from typing import Any, Dict, Optional

from werkzeug.datastructures import FileStorage

from core.email_templates import render_contact_email
from core.errors import MailDeliveryError, UpstreamError, ValidationError
from core.mailer import Attachment, Mailer
from core.session_tokens import TokenRegistry

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ('name', 'email', 'message')
OPTIONAL_FIELDS = ('company', 'phone')
SINGLE_LINE_FIELDS = ('name', 'email', 'company', 'phone')


class SavedUpload:
    """An uploaded file spooled to the upload folder until the request ends"""

    def __init__(self, path: str, original_name: str, content_type: Optional[str]):
        self.path = path
        self.original_name = original_name
        self.content_type = content_type

    @classmethod
    def save(cls, upload: FileStorage, upload_folder: str) -> 'SavedUpload':
        os.makedirs(upload_folder, exist_ok=True)
        path = os.path.join(upload_folder, uuid.uuid4().hex)
        upload.save(path)
        original_name = os.path.basename((upload.filename or '').replace('\\', '/')) or 'attachment'
        return cls(path, original_name, upload.mimetype)

    def read(self) -> bytes:
        with open(self.path, 'rb') as handle:
            return handle.read()

    def discard(self) -> None:
        try:
            os.unlink(self.path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not delete temporary upload {self.path}: {e}")


class ContactService:

    def __init__(self, tokens: TokenRegistry, mailer: Mailer, recipient: str, upload_folder: str):
        self.tokens = tokens
        self.mailer = mailer
        self.recipient = recipient
        self.upload_folder = upload_folder

    def submit(self, form: Dict[str, Any], upload: Optional[FileStorage] = None) -> None:
        """
        Forward one contact form submission to the site operator.

        The upload is spooled to disk for the duration of the call and removed
        on every path.

        Raises:
            ValidationError: unknown token or missing required fields
            UpstreamError: the mail collaborator failed
        """
        saved = None
        if upload is not None and upload.filename:
            saved = SavedUpload.save(upload, self.upload_folder)
            logger.info(f"Received document: {saved.original_name}")

        try:
            self._submit(form, saved)
        finally:
            if saved is not None:
                saved.discard()

    def _submit(self, form: Dict[str, Any], saved: Optional[SavedUpload]) -> None:
        token = form.get('token')
        if token not in self.tokens:
            logger.warning("Token verification failed: Invalid or missing token.")
            raise ValidationError('Invalid session token.')

        fields = {name: str(form.get(name) or '').strip() for name in REQUIRED_FIELDS + OPTIONAL_FIELDS}
        # These end up in Subject/Reply-To, so they must stay on one line
        for name in SINGLE_LINE_FIELDS:
            fields[name] = ' '.join(fields[name].split())
        missing = [name for name in REQUIRED_FIELDS if not fields[name]]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}.")

        if not self.tokens.consume(token):
            # Another request spent the token between the check and now
            raise ValidationError('Invalid session token.')

        attachments = []
        if saved is not None:
            attachments.append(Attachment(saved.original_name, saved.read(), saved.content_type))

        rendered = render_contact_email(fields, saved.original_name if saved else None)
        msg = self.mailer.build_message(
            subject=rendered.subject,
            to=[self.recipient],
            html=rendered.html,
            text=rendered.text,
            reply_to=fields['email'],
            attachments=attachments,
        )

        try:
            self.mailer.send(msg)
        except MailDeliveryError as e:
            logger.error(f"Error sending contact email: {e}")
            raise UpstreamError('Error sending email.') from e

        logger.info(f"Contact submission from {fields['email']} forwarded to {self.recipient}")
