"""Short, human-typable identifiers for tags and locations."""
import secrets
import string
import time

ALPHABET = string.digits + string.ascii_uppercase


def base36(number: int) -> str:
    if number == 0:
        return '0'
    digits = []
    while number:
        number, rem = divmod(number, 36)
        digits.append(ALPHABET[rem])
    return ''.join(reversed(digits))


def timestamp_code() -> str:
    """Millisecond clock in base36, upper case."""
    return base36(int(time.time() * 1000))


def random_code(length: int = 4) -> str:
    return ''.join(secrets.choice(ALPHABET) for _ in range(length))
