from datetime import datetime, timedelta
from typing import Optional, Dict, Any, Tuple
from jose import ExpiredSignatureError, JWTError, jwt
import bcrypt
import hashlib
import hmac
import secrets

from schoolms.core.config import settings
from schoolms.core.exceptions import InvalidTokenError, TokenExpiredError

ACCESS_TOKEN_TYPE = "access"
PASSWORD_RESET_TOKEN_TYPE = "password_reset"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password"""
    if not hashed_password:
        return False
    # Bcrypt has a 72 byte limit - truncate password if necessary
    password_bytes = plain_password.encode('utf-8')[:72]
    return bcrypt.checkpw(password_bytes, hashed_password.encode('utf-8'))


def get_password_hash(password: str) -> str:
    """Hash password with configurable rounds (BCRYPT_ROUNDS in .env)"""
    password_bytes = password.encode('utf-8')[:72]
    hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS))
    return hashed.decode('utf-8')


def generate_temporary_password() -> str:
    """
    One-time password for admin-created accounts.

    The fixed prefix covers upper, lower, digit and symbol classes; the
    random suffix carries the entropy.
    """
    return f"{settings.TEMP_PASSWORD_PREFIX}{secrets.token_hex(4)}"


def generate_security_stamp() -> str:
    """Random value embedded in session tokens; rotating it revokes them"""
    return secrets.token_hex(16)


def hash_token(token: str) -> str:
    """SHA-256 digest used to store single-use tokens"""
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def tokens_match(token: str, token_hash: Optional[str]) -> bool:
    if not token_hash:
        return False
    return hmac.compare_digest(hash_token(token), token_hash)


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token"""
    to_encode = data.copy()

    if expires_delta:
        expire = datetime.utcnow() + expires_delta
    else:
        expire = datetime.utcnow() + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)

    to_encode.update({"exp": expire, "type": ACCESS_TOKEN_TYPE})
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def create_password_reset_token(user_id: str, email: str) -> Tuple[str, datetime]:
    """Create a signed password reset token and return it with its expiry"""
    expire = datetime.utcnow() + timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES)
    to_encode = {
        "sub": str(user_id),
        "email": email,
        "type": PASSWORD_RESET_TOKEN_TYPE,
        "jti": secrets.token_urlsafe(16),
        "exp": expire,
    }
    token = jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
    return token, expire


def decode_token(token: str, expected_type: Optional[str] = None) -> Dict[str, Any]:
    """Decode and verify a JWT, optionally checking its `type` claim"""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise TokenExpiredError()
    except JWTError:
        raise InvalidTokenError("Could not validate credentials")

    if expected_type and payload.get("type") != expected_type:
        raise InvalidTokenError("Invalid token type")

    return payload
