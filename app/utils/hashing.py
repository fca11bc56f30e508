import hashlib

from pwdlib import PasswordHash
from pwdlib.exceptions import UnknownHashError
from pwdlib.hashers.argon2 import Argon2Hasher
from pwdlib.hashers.bcrypt import BcryptHasher

from app.core.config import get_settings

# bcrypt for new hashes; argon2id is still accepted for rows created by the old seed scripts.
password_hash = PasswordHash(
    (
        BcryptHasher(rounds=get_settings().BCRYPT_ROUNDS),
        Argon2Hasher(),
    )
)

# Verified against when the principal does not exist so both failure paths cost the same.
_DUMMY_HASH = password_hash.hash("neura-dummy-password")


def get_password_hash(plain: str) -> str:
    return password_hash.hash(plain)


def verify_password(plain: str, hashed: str | None) -> bool:
    if not hashed:
        password_hash.verify(plain, _DUMMY_HASH)
        return False
    try:
        return password_hash.verify(plain, hashed)
    except UnknownHashError:
        return False


def password_fingerprint(hashed: str) -> str:
    """Short digest of a stored hash; changes whenever the password does."""
    return hashlib.sha256(hashed.encode("utf-8")).hexdigest()[:16]
