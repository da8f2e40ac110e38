import bcrypt
from loguru import logger


def get_password_hash(password: str) -> str:
    """Hash an operator password with bcrypt"""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    try:
        return bcrypt.checkpw(
            plain_password.encode("utf-8"),
            hashed_password.encode("utf-8")
        )
    except ValueError as e:
        logger.error(f"Password verification failed: {e}")
        return False
