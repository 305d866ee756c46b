"""
Bearer credential verification.

Tokens are HS256 (by default) JWTs minted by the identity service; this
process only checks the signature and expiry and reads the subject.
"""
import logging

from jose import ExpiredSignatureError, JWTError, jwt

from exceptions import AuthenticationError, ConfigurationError
from services.interfaces import ICredentialVerifier

logger = logging.getLogger(__name__)


class JWTCredentialVerifier(ICredentialVerifier):

    def __init__(self, secret: str, algorithm: str = "HS256"):
        if not secret:
            raise ConfigurationError("JWT secret is not configured", missing_keys=["VSP_JWT_SECRET"])
        self.secret = secret
        self.algorithm = algorithm

    def verify(self, token: str) -> str:
        if not token:
            raise AuthenticationError()

        try:
            payload = jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise AuthenticationError("Token expired")
        except JWTError as e:
            logger.warning(f"JWT validation failed: {type(e).__name__}: {e}")
            raise AuthenticationError("Invalid authentication credentials")

        subject = payload.get("sub") or payload.get("id")
        if not subject:
            logger.warning("JWT payload missing 'sub' claim")
            raise AuthenticationError("Invalid authentication credentials")
        return str(subject)
