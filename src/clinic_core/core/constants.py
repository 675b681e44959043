"""Column widths, token sizes and password bounds shared by models, schemas and auth.

Column widths here must match the initial Alembic migration.
"""

# Slugs and domains
MAX_SLUG_LENGTH = 63
MAX_DOMAIN_LENGTH = 255

# Hash lengths
SHA256_HEX_LENGTH = 64

# String field lengths
MAX_EMAIL_LENGTH = 255
MAX_NAME_LENGTH = 255
MAX_ENUM_LENGTH = 32
MAX_TOTP_SECRET_LENGTH = 64

# Password requirements
MIN_PASSWORD_LENGTH = 8
MAX_PASSWORD_LENGTH = 128
BCRYPT_ROUNDS = 12

# Token settings
ACCESS_TOKEN_JTI_LENGTH = 32
REFRESH_TOKEN_BYTES = 32
INVITATION_TOKEN_BYTES = 32
TOKEN_TYPE_BEARER = "Bearer"

# Secret key requirements
MIN_SECRET_KEY_LENGTH = 32
DEFAULT_INSECURE_SECRET = "change-me-in-production"
