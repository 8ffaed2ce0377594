# vehicle_monitor/seed.py
"""
Creates the first admin account. Registration requires an authenticated
caller, so at least one user has to exist before the API is usable.

    python -m vehicle_monitor.seed <username> <password>
"""

import logging
import sys

from sqlalchemy.orm import Session

from .auth import hash_password
from .config import MIN_PASSWORD_LENGTH
from .database import Base, SessionLocal, engine
from .models import User

logger = logging.getLogger(__name__)


def ensure_admin_user(db: Session, username: str, password: str) -> User:
    user = db.query(User).filter(User.username == username).first()
    if user is not None:
        return user
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValueError(f"Admin password must be at least {MIN_PASSWORD_LENGTH} characters")
    user = User(username=username, password_hash=hash_password(password))
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Admin account created: {username}")
    return user


def main(argv=None) -> int:
    logging.basicConfig(level=logging.INFO)
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 2:
        print("usage: python -m vehicle_monitor.seed <username> <password>", file=sys.stderr)
        return 2

    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        ensure_admin_user(db, args[0], args[1])
    except ValueError as e:
        logger.error(str(e))
        return 1
    finally:
        db.close()
    return 0


if __name__ == "__main__":
    sys.exit(main())
