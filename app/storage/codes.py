import random
import string

CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_match_code(length: int = 6) -> str:
    """Short shareable code, e.g. "K7Q2ZD" """
    return "".join(random.choice(CODE_ALPHABET) for _ in range(length))
