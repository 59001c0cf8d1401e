"""Password hashing with a one-way migration from the legacy format.

Accounts imported from the first version of the site store an unsalted
SHA-256 hex digest. New hashes are always bcrypt. The stored format is
identified up front and verified with exactly that scheme; a successful
legacy verification tells the caller to re-hash.
"""
import enum
from typing import NamedTuple

from passlib.context import CryptContext

from cnc_admin.config import get_settings

settings = get_settings()


class HashScheme(str, enum.Enum):
    """Stored password formats."""
    BCRYPT = "bcrypt"
    LEGACY_SHA256 = "hex_sha256"


pwd_context = CryptContext(
    schemes=[HashScheme.BCRYPT.value, HashScheme.LEGACY_SHA256.value],
    default=HashScheme.BCRYPT.value,
    deprecated=[HashScheme.LEGACY_SHA256.value],
    bcrypt__rounds=settings.bcrypt_rounds,
)

# bcrypt only looks at the first 72 bytes
BCRYPT_MAX_BYTES = 72


class PasswordCheck(NamedTuple):
    valid: bool
    scheme: HashScheme

    @property
    def needs_upgrade(self) -> bool:
        return self.valid and self.scheme is HashScheme.LEGACY_SHA256


def _truncate(password: str) -> str:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES].decode("utf-8", errors="ignore")


def hash_password(password: str) -> str:
    """Hash with the strong scheme."""
    return pwd_context.hash(_truncate(password))


def identify_scheme(password_hash: str) -> HashScheme:
    """Return the scheme of a stored hash; raises ValueError for unknown formats."""
    scheme = pwd_context.identify(password_hash)
    if scheme is None:
        raise ValueError("Unrecognised password hash format")
    return HashScheme(scheme)


def verify_password(password: str, password_hash: str) -> PasswordCheck:
    """Verify against the stored hash using only the scheme it was written with."""
    try:
        scheme = identify_scheme(password_hash)
    except ValueError:
        return PasswordCheck(valid=False, scheme=HashScheme.BCRYPT)

    if scheme is HashScheme.BCRYPT:
        candidate = _truncate(password)
    else:
        candidate = password

    valid = pwd_context.verify(candidate, password_hash)
    return PasswordCheck(valid=valid, scheme=scheme)
