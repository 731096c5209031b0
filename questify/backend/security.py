from datetime import datetime, timedelta, UTC
from typing import Any, Dict

import jwt
from pwdlib import PasswordHash
from pwdlib.hashers.bcrypt import BcryptHasher

# bcrypt only considers the first 72 bytes of a secret
BCRYPT_MAX_BYTES = 72


def _secret(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int = 10) -> str:
    return PasswordHash((BcryptHasher(rounds=rounds),)).hash(_secret(password))


def verify_password(password: str, password_hash: str) -> bool:
    # The cost factor is read back from the hash itself.
    return PasswordHash((BcryptHasher(),)).verify(_secret(password), password_hash)


def create_token(subject: str, secret: str, expires_in: int = 3600, algorithm: str = "HS256") -> str:
    now = datetime.now(UTC)
    payload: Dict[str, Any] = {
        "sub": subject,
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(seconds=expires_in)).timestamp()),
    }
    return jwt.encode(payload, secret, algorithm=algorithm)


def decode_token(token: str, secret: str, algorithm: str = "HS256") -> str:
    """
    Verify signature and expiry of a bearer token and return its subject.

    Raises jwt.InvalidTokenError (or a subclass such as ExpiredSignatureError)
    for anything that does not verify.
    """
    payload = jwt.decode(
        token,
        secret,
        algorithms=[algorithm],
        options={"require": ["sub", "exp"]},
    )
    return payload["sub"]
