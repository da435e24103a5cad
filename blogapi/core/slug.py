import re

_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def generate_slug(text: str) -> str:
    """Lowercase ``text`` and collapse every non-alphanumeric run into one hyphen."""
    slug = _NON_ALNUM.sub("-", text.lower().strip())
    return slug.strip("-")
