import secrets
import string

LOWERCASE = string.ascii_lowercase
UPPERCASE = string.ascii_uppercase
DIGITS = string.digits
SPECIAL = "!@#$%^&*()_+-=[]{}|;:,.<>?"

_CLASSES = (LOWERCASE, UPPERCASE, DIGITS, SPECIAL)
_ALPHABET = "".join(_CLASSES)


def generate_password(length: int = 16) -> str:
    """Random password with at least one character of every class."""
    if length < len(_CLASSES):
        raise ValueError(f"Password length must be at least {len(_CLASSES)}")
    chars = [secrets.choice(group) for group in _CLASSES]
    chars.extend(secrets.choice(_ALPHABET) for _ in range(length - len(chars)))
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)
