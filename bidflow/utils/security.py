import bcrypt
from datetime import datetime, timedelta
from typing import Optional
from jose import jwt, JWTError
from bidflow.core.config import settings

# Bcrypt has a 72-byte input limit
MAX_BCRYPT_BYTES = 72

def hash_password(password: str) -> str:
    if password is None:
        raise ValueError("password must be provided")

    pw_bytes = password.encode("utf-8")
    if len(pw_bytes) > MAX_BCRYPT_BYTES:
        raise ValueError(f"password must be at most {MAX_BCRYPT_BYTES} bytes")

    salt = bcrypt.gensalt()
    password_hash = bcrypt.hashpw(pw_bytes, salt)
    return password_hash.decode('utf-8')

def verify_password(plain_password: str, hashed_password: str) -> bool:
    pw_bytes = plain_password.encode("utf-8")
    hash_bytes = hashed_password.encode("utf-8")
    return bcrypt.checkpw(pw_bytes, hash_bytes)

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def decode_access_token(token: str) -> Optional[str]:
    """Return the subject of a valid token, or None."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    return payload.get("sub")
