"""
Record Code Generator Service

Generates sequential, human-readable codes for new records:
  - Non-conformities:  NC-{year}-{seq}    (e.g. NC-2024-003)
  - Tests (ensaios):   ENS-{year}-{seq}   (e.g. ENS-2024-012)
  - Materials:         MAT-{year}-{seq}
  - Documents:         DOC-{year}-{seq}
  - RFIs:              RFI-{year}-{seq}
  - Checklists:        CKL-{year}-{seq}

SEQ is a 3-digit zero-padded counter scoped to the record type. It grows
past 999 without truncation and is never reset on a year change.

Race-safe: the counter row is advanced with a single atomic
``UPDATE ... SET last_value = last_value + 1`` inside the caller's
transaction, so concurrent submissions serialise on the row lock.
"""

import logging
from datetime import date

import sqlalchemy as sa
from sqlalchemy.exc import IntegrityError

from obraqms.models import db
from obraqms.models.record import CODE_PREFIXES, RECORD_TYPES, CodeSequence, _utcnow, normalize_record_type

logger = logging.getLogger(__name__)


def get_prefix(record_type: str) -> str:
    return CODE_PREFIXES[normalize_record_type(record_type)]


def format_code(prefix: str, year: int, seq: int) -> str:
    return f"{prefix}-{year}-{seq:03d}"


def _ensure_sequence_row(record_type: str) -> None:
    """Create the counter row if missing; a concurrent insert is fine."""
    table = CodeSequence.__table__
    try:
        with db.session.begin_nested():
            db.session.execute(
                sa.insert(table).values(record_type=record_type, last_value=0, updated_at=_utcnow())
            )
    except IntegrityError:
        logger.debug("Code sequence row for %s created concurrently", record_type)


def _next_value(record_type: str) -> int:
    table = CodeSequence.__table__
    for _ in range(2):
        result = db.session.execute(
            sa.update(table)
            .where(table.c.record_type == record_type)
            .values(last_value=table.c.last_value + 1, updated_at=_utcnow())
        )
        if result.rowcount:
            return db.session.execute(
                sa.select(table.c.last_value).where(table.c.record_type == record_type)
            ).scalar_one()
        _ensure_sequence_row(record_type)
    raise RuntimeError(f"Could not advance code sequence for {record_type}")


def generate_code(record_type: str, *, today: date | None = None) -> str:
    """Issue the next code for *record_type*: NC-2024-001, NC-2024-002, ..."""
    record_type = normalize_record_type(record_type)
    seq = _next_value(record_type)
    year = (today or date.today()).year
    code = format_code(CODE_PREFIXES[record_type], year, seq)
    logger.debug("Generated code %s", code)
    return code


def current_value(record_type: str) -> int:
    """Last sequence number issued for *record_type* (0 if none yet)."""
    record_type = normalize_record_type(record_type)
    table = CodeSequence.__table__
    value = db.session.execute(
        sa.select(table.c.last_value).where(table.c.record_type == record_type)
    ).scalar()
    return value or 0


def seed_sequences() -> int:
    """Create any missing counter rows. Returns the number created."""
    existing = {row.record_type for row in CodeSequence.query.all()}
    created = 0
    for record_type in RECORD_TYPES:
        if record_type not in existing:
            db.session.add(CodeSequence(record_type=record_type, last_value=0))
            created += 1
    db.session.flush()
    return created
