from typing import Dict, Any, Optional
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
from loguru import logger

from karetek.config import settings

MIN_PASSWORD_LENGTH = 8

class AuthHelper:
    @staticmethod
    def create_access_token(user_id: str, email: str, expires_delta: Optional[timedelta] = None) -> str:
        """Create JWT access token carrying the user id and email"""
        try:
            now = datetime.now(timezone.utc)
            if expires_delta:
                expire = now + expires_delta
            else:
                expire = now + timedelta(days=settings.jwt_expiration_days)

            to_encode = {
                "id": user_id,
                "email": email,
                "exp": expire,
                "iat": now
            }

            return jwt.encode(
                to_encode,
                settings.jwt_secret,
                algorithm=settings.jwt_algorithm
            )

        except Exception as e:
            logger.error(f"Failed to create access token: {e}")
            raise

    @staticmethod
    def verify_token(token: str) -> Optional[Dict[str, Any]]:
        """Verify JWT token and return its payload"""
        try:
            payload = jwt.decode(
                token,
                settings.jwt_secret,
                algorithms=[settings.jwt_algorithm]
            )
            if not payload.get("id"):
                logger.warning("Token has no user id")
                return None
            return payload

        except jwt.ExpiredSignatureError:
            logger.warning("Token has expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.warning(f"Token verification failed: {e}")
            return None

    @staticmethod
    def hash_password(password: str) -> str:
        salt = bcrypt.gensalt(rounds=settings.bcrypt_rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    @staticmethod
    def verify_password(password: str, password_hash: Optional[str]) -> bool:
        # OAuth-only accounts have no password
        if not password_hash:
            return False
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError as e:
            logger.warning(f"Stored password hash is malformed: {e}")
            return False

class ValidationHelper:
    @staticmethod
    def validate_registration(data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate registration data"""
        errors = {}

        if not all(data.get(field) for field in ("email", "password", "firstName", "lastName")):
            errors["required"] = "Email, password, first name, and last name are required"
        elif len(data["password"]) < MIN_PASSWORD_LENGTH:
            errors["password"] = f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"

        return errors

    @staticmethod
    def validate_metric(data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate a new health metric"""
        errors = {}

        if not data.get("metricType") or data.get("value") in (None, "") or not data.get("unit"):
            errors["required"] = "Metric type, value, and unit are required"

        return errors

    @staticmethod
    def validate_record_entry(data: Dict[str, Any]) -> Dict[str, Any]:
        """Validate a new medication, allergy or condition entry"""
        errors = {}

        if not (data.get("name") or "").strip():
            errors["name"] = "Name is required"

        return errors

def public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    """Strip credential fields from a user row"""
    return {key: value for key, value in user.items() if key != "password_hash"}
