import secrets

from werkzeug.security import check_password_hash, generate_password_hash

TOKEN_BYTES = 32


def issue_token() -> str:
    return secrets.token_hex(TOKEN_BYTES)


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(hashed_password: str, password: str) -> bool:
    if not hashed_password:
        return False
    return check_password_hash(hashed_password, password)
