import logging
import secrets
import string
from typing import Callable

from sqlalchemy.orm import Session

from ticketing.core.config import settings
from ticketing.core.errors import CodeSpaceExhaustedError
from ticketing.models.ticket import Ticket

logger = logging.getLogger(__name__)

ALPHABET = string.ascii_uppercase + string.digits

def generate_code(length: int | None = None) -> str:
    length = length or settings.ticket_code_length
    return "".join(secrets.choice(ALPHABET) for _ in range(length))

def code_exists(db: Session, code: str) -> bool:
    # Session is autoflush=False: callers flush each new Ticket before the next lookup
    return db.query(Ticket.id).filter(Ticket.code == code).first() is not None

def unique_code(
    db: Session,
    generate: Callable[[int], str] = generate_code,
    length: int | None = None,
    max_attempts: int | None = None,
) -> str:
    """Return a ticket code not yet persisted.

    Tries ``max_attempts`` codes at the configured length, then the same number at
    double length. Running out of both is a configuration problem, not bad luck.
    """
    length = length or settings.ticket_code_length
    max_attempts = max_attempts or settings.ticket_code_max_attempts
    for size in (length, length * 2):
        for _ in range(max_attempts):
            code = generate(size)
            if not code_exists(db, code):
                return code
        logger.warning("Ticket code collisions exhausted attempts | length=%s attempts=%s", size, max_attempts)
    logger.error("Ticket code space exhausted | length=%s", length)
    raise CodeSpaceExhaustedError("Could not generate a unique ticket code")
