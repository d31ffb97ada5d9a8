import re
import secrets
import string
import unicodedata

# Ambiguous characters (0/O, 1/I) are left out so codes can be read aloud
CODE_ALPHABET = "".join(
    c for c in string.ascii_uppercase + string.digits if c not in "0O1I"
)
CHECK_IN_CODE_LENGTH = 6
SECURITY_CODE_LENGTH = 4


def generate_slug(text: str) -> str:
    normalized = (
        unicodedata.normalize("NFKD", text).encode("ascii", "ignore").decode("ascii")
    )
    slug = re.sub(r"[^a-z0-9]+", "-", normalized.lower()).strip("-")
    return slug or "church"


def generate_code(length: int = CHECK_IN_CODE_LENGTH) -> str:
    return "".join(secrets.choice(CODE_ALPHABET) for _ in range(length))


def normalize_page_slug(slug: str) -> str:
    """Page slugs are stored with a single leading slash."""
    return "/" + slug.strip().strip("/")
