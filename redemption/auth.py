import logging

from passlib.context import CryptContext
from sqlalchemy.orm import Session

from redemption.domain.errors import ValidationError
from redemption.infrastructure.db.models import User

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

MIN_PASSWORD_LENGTH = 8


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return pwd_context.verify(password, password_hash)


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.query(User).filter(User.email == email.strip().lower()).first()


def authenticate(db: Session, email: str, password: str) -> User | None:
    user = get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        return None
    return user


def register_user(db: Session, email: str, password: str, name: str | None = None) -> User:
    """
    Raises:
        ValidationError: email taken or password too short
    """
    email = email.strip().lower()
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError({"password": f"Password must be at least {MIN_PASSWORD_LENGTH} characters"})
    if get_user_by_email(db, email) is not None:
        raise ValidationError({"email": "Email already registered"})

    user = User(email=email, password_hash=hash_password(password), name=name, enabled_plugins=[])
    db.add(user)
    db.commit()
    logger.info("Registered user_id=%s", user.id)
    return user
