import enum

from shared.constants import Role

# ── Default token lifetimes (overridable through Settings) ────────────────────
ACCESS_TOKEN_EXPIRE_SECONDS: int = 3_600         # 1 hour
REFRESH_TOKEN_EXPIRE_SECONDS: int = 86_400 * 7   # 7 days
RESET_TOKEN_EXPIRE_SECONDS: int = 900            # 15 minutes
VERIFY_OTP_EXPIRE_SECONDS: int = 600             # 10 minutes

VERIFY_OTP_DIGITS: int = 6

# ── Cookies carrying the token pair ───────────────────────────────────────────
ACCESS_COOKIE_NAME: str = "access_token"
REFRESH_COOKIE_NAME: str = "refresh_token"

# ── Password input bounds ─────────────────────────────────────────────────────
MAX_PASSWORD_BYTES: int = 1024

DEFAULT_BIO: str = "This user prefers to keep an air of mystery about them."


# ── Account role ──────────────────────────────────────────────────────────────
# One enum for the stored role and the access-token snapshot other services read.
UserRole = Role


# ── Signed token purposes (each has its own secret and lifetime) ──────────────
class TokenPurpose(str, enum.Enum):
    ACCESS = "access"
    REFRESH = "refresh"
    RESET = "reset"
