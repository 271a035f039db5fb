# schoolhub/core/security.py - Authentication utilities (JWT, password hashing)
from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Optional, Union
import re
import secrets

import jwt
from passlib.context import CryptContext
from fastapi import HTTPException, status

from schoolhub.core.config import settings

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
    bcrypt__ident="2b"
)


class SecurityError(Exception):
    """Custom exception for security-related errors"""
    pass


class TokenManager:
    """Manages JWT token creation and validation"""

    RESERVED_CLAIMS = {"sub", "iat", "exp", "iss", "aud", "type", "jti"}

    def __init__(self):
        self.secret_key = settings.JWT_SECRET
        self.algorithm = settings.JWT_ALGORITHM
        self.issuer = settings.JWT_ISSUER
        self.audience = settings.JWT_AUDIENCE
        self.access_token_expire_minutes = settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES

    def create_access_token(
        self,
        subject: Union[str, Any],
        expires_delta: Optional[timedelta] = None,
        additional_claims: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Create a JWT access token.

        Args:
            subject: Token subject (the user ID)
            expires_delta: Custom expiration time
            additional_claims: Extra claims such as email, roles or active_tenant_id

        Returns:
            Encoded JWT token string

        Raises:
            SecurityError: If a reserved claim is overridden or encoding fails
        """
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or timedelta(minutes=self.access_token_expire_minutes))

        payload = {
            "sub": str(subject),
            "iat": now,
            "exp": expire,
            "iss": self.issuer,
            "aud": self.audience,
            "type": "access",
            "jti": secrets.token_hex(16),
        }

        if additional_claims:
            for claim in additional_claims:
                if claim in self.RESERVED_CLAIMS:
                    raise SecurityError(f"Cannot override reserved JWT claim: {claim}")
            payload.update(additional_claims)

        try:
            return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        except jwt.PyJWTError as e:
            raise SecurityError(f"Failed to create access token: {e}")

    def decode_token(self, token: str, expected_type: str = "access") -> Dict[str, Any]:
        """
        Decode and validate a JWT token.

        Raises:
            HTTPException: 401 if the token is invalid, expired or of the wrong type
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer,
            )
        except jwt.ExpiredSignatureError:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token has expired",
                headers={"WWW-Authenticate": "Bearer"},
            )
        except jwt.InvalidTokenError as e:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=f"Invalid token: {e}",
                headers={"WWW-Authenticate": "Bearer"},
            )

        if payload.get("type") != expected_type:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=f"Invalid token type. Expected {expected_type}",
                headers={"WWW-Authenticate": "Bearer"},
            )

        return payload


class PasswordManager:
    """Manages password hashing, verification, and strength validation"""

    @staticmethod
    def hash_password(password: str) -> str:
        if not password:
            raise SecurityError("Password cannot be empty")
        return pwd_context.hash(password)

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        if not plain_password or not hashed_password:
            return False
        try:
            return pwd_context.verify(plain_password, hashed_password)
        except ValueError:
            # Unknown or malformed hash
            return False

    @staticmethod
    def validate_password_strength(password: str) -> Dict[str, Any]:
        """
        Validate password strength with detailed feedback.

        Returns:
            Dictionary with ``valid`` flag and a list of ``feedback`` messages
        """
        feedback = []
        if not password or len(password) < 8:
            feedback.append("Password must be at least 8 characters long")
        if not re.search(r'[A-Z]', password or ""):
            feedback.append("Password must contain at least one uppercase letter")
        if not re.search(r'[a-z]', password or ""):
            feedback.append("Password must contain at least one lowercase letter")
        if not re.search(r'\d', password or ""):
            feedback.append("Password must contain at least one digit")

        return {
            "valid": not feedback,
            "feedback": feedback or ["Password meets all requirements"],
        }


token_manager = TokenManager()
password_manager = PasswordManager()


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Create access token from a claims dict containing ``sub``"""
    subject = data.get("sub")
    if not subject:
        raise SecurityError("Token data must include 'sub' (subject)")

    additional_claims = {k: v for k, v in data.items() if k != "sub"}
    return token_manager.create_access_token(subject, expires_delta, additional_claims)


def decode_token(token: str) -> Dict[str, Any]:
    return token_manager.decode_token(token)


def hash_password(password: str) -> str:
    return password_manager.hash_password(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return password_manager.verify_password(plain_password, hashed_password)


__all__ = [
    "TokenManager", "PasswordManager",
    "token_manager", "password_manager",
    "create_access_token", "decode_token", "hash_password", "verify_password",
    "SecurityError"
]
