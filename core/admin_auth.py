# core/admin_auth.py
"""
Admin session management with signed, time-limited bearer credentials.

A single admin identity is configured through the environment. Login compares
the submitted pair against it and returns an HS256 JWT; verification checks the
signature, the expiry and that the embedded username is still the admin's.
"""

import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from werkzeug.security import check_password_hash

from core.errors import AuthenticationError, AuthorizationError

logger = logging.getLogger(__name__)

JWT_ALGORITHM = 'HS256'


class AdminSessionManager:

    def __init__(self,
                 username: Optional[str],
                 password: Optional[str],
                 secret: str,
                 lifetime: timedelta = timedelta(hours=1),
                 password_hash: Optional[str] = None):
        """
        Args:
            username: Configured admin username
            password: Configured admin password (plaintext comparison)
            secret: HMAC key used to sign credentials
            lifetime: Validity window of issued credentials
            password_hash: Optional werkzeug hash; when set it replaces the
                plaintext password check
        """
        self.username = username
        self.password = password
        self.password_hash = password_hash
        self.secret = secret
        self.lifetime = lifetime

    @property
    def configured(self) -> bool:
        return bool(self.username and (self.password or self.password_hash))

    def _password_matches(self, password: str) -> bool:
        if self.password_hash:
            return check_password_hash(self.password_hash, password)
        return hmac.compare_digest(password.encode('utf-8'), self.password.encode('utf-8'))

    def check_credentials(self, username, password) -> bool:
        if not self.configured:
            logger.warning("Admin login attempted but no admin credentials are configured")
            return False
        if not isinstance(username, str) or not isinstance(password, str):
            return False

        username_ok = hmac.compare_digest(username.encode('utf-8'), self.username.encode('utf-8'))
        password_ok = self._password_matches(password)
        return username_ok and password_ok

    def issue(self, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        payload = {
            'username': self.username,
            'iat': now,
            'exp': now + self.lifetime,
        }
        return jwt.encode(payload, self.secret, algorithm=JWT_ALGORITHM)

    def login(self, username, password) -> str:
        """
        Exchange the admin username/password for a signed credential.

        Raises:
            AuthenticationError: the pair does not match the configured admin
        """
        if not self.check_credentials(username, password):
            logger.warning(f"Admin login failed for username {username!r}")
            raise AuthenticationError('Invalid username or password')

        logger.info("Admin login successful")
        return self.issue()

    def verify(self, credential: Optional[str]) -> Dict[str, Any]:
        """
        Validate a bearer credential and return its claims.

        Raises:
            AuthenticationError: missing, forged or expired credential
            AuthorizationError: valid credential for a non-admin identity
        """
        if not credential:
            raise AuthenticationError('Authentication failed: No token provided.')

        try:
            claims = jwt.decode(credential, self.secret, algorithms=[JWT_ALGORITHM])
        except jwt.ExpiredSignatureError:
            logger.warning("Rejected expired admin credential")
            raise AuthenticationError('Authentication failed: Invalid token.')
        except jwt.InvalidTokenError as e:
            logger.warning(f"Rejected invalid admin credential: {e}")
            raise AuthenticationError('Authentication failed: Invalid token.')

        if not self.username or claims.get('username') != self.username:
            logger.warning(f"Credential for {claims.get('username')!r} is not the admin identity")
            raise AuthorizationError('Authentication failed: Invalid user.')

        return claims
