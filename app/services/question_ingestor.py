"""Bulk question upload.

Accepted payload::

    {
      "exam_name": "GATE",
      "subject": "Electronics and Communication Engineering",
      "questions": [
        {
          "question": "2+2?",
          "options": {"A": "3", "B": "4", "C": "5", "D": "6"},
          "correct_answer": "B",
          "explanation": "...",          # optional
          "type": "Theoretical",         # optional, anything else means Numerical
          "subject": "Arithmetic"        # optional, overrides the payload subject
        },
        {"question": "Speed of light (km/s)?", "correct_answer": 299792}
      ]
    }

A record with an ``options`` mapping of exactly four entries is an MCQ, any
other record is numerical. Existing question texts abort the whole upload
before anything is written.
"""
import json
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import DuplicateQuestionsError, InsertionError, MalformedInputError
from app.models.question import Question

logger = logging.getLogger(__name__)

OPTION_LETTERS = ["A", "B", "C", "D"]


def _is_missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_payload(payload: Any) -> List[Dict[str, Any]]:
    """Check the top-level shape and return the raw question records."""
    if (
        not isinstance(payload, dict)
        or _is_missing(payload.get("exam_name"))
        or _is_missing(payload.get("subject"))
        or not isinstance(payload.get("questions"), list)
    ):
        raise MalformedInputError(
            "Invalid JSON format. Required fields: exam_name, subject, and questions array"
        )
    return payload["questions"]


def find_duplicates(db: Session, records: List[Dict[str, Any]]) -> List[str]:
    """Question texts that already exist in the bank or repeat within the upload."""
    texts = [r.get("question") for r in records if isinstance(r, dict) and isinstance(r.get("question"), str)]
    if not texts:
        return []

    existing = {
        row[0]
        for row in db.query(Question.question_text).filter(Question.question_text.in_(set(texts))).all()
    }

    duplicates: List[str] = []
    seen = set()
    for text in texts:
        if (text in existing or text in seen) and text not in duplicates:
            duplicates.append(text)
        seen.add(text)
    return duplicates


def transform_record(record: Any, index: int, exam_name: str, subject: str) -> Dict[str, Any]:
    """Turn one raw upload record into ``master_questions`` column values."""
    number = index + 1
    try:
        if not isinstance(record, dict):
            raise MalformedInputError("Question must be an object")
        if _is_missing(record.get("question")):
            raise MalformedInputError(f"Question text is required for question {number}")
        if _is_missing(record.get("correct_answer")):
            raise MalformedInputError(f"Correct answer is required for question {number}")

        options = record.get("options")
        is_mcq = isinstance(options, dict) and len(options) == 4
        record_subject = record.get("subject") or subject

        row = {
            "exam_type": exam_name,
            "subject": record_subject,
            "topic": record_subject,
            "question_text": record["question"],
            "question_type": "MCQ" if is_mcq else "NUMERICAL",
            "question_pattern": "THEORETICAL" if record.get("type") == "Theoretical" else "NUMERICAL",
            "difficulty": "MEDIUM",
            "explanation": record.get("explanation") or "",
        }

        if is_mcq:
            missing = [letter for letter in OPTION_LETTERS if _is_missing(options.get(letter))]
            if missing:
                raise MalformedInputError(
                    f"Missing options {', '.join(missing)} for MCQ question {number}"
                )
            correct = record["correct_answer"]
            if correct not in OPTION_LETTERS:
                raise MalformedInputError(
                    f"Invalid correct answer '{correct}' for MCQ question {number}. "
                    f"Must be one of: {', '.join(OPTION_LETTERS)}"
                )
            row["options"] = [f"{letter}) {options[letter]}" for letter in OPTION_LETTERS]
            row["correct_answer"] = f"{correct}) {options[correct]}"
        else:
            row["options"] = None
            row["correct_answer"] = str(record["correct_answer"])

        return row
    except MalformedInputError as e:
        raise MalformedInputError(f"Error processing question {number}: {e.message}") from e


def _insert_batches(db: Session, rows: List[Dict[str, Any]], batch_size: int, transactional: bool) -> int:
    committed = 0
    pending = 0
    try:
        for start in range(0, len(rows), batch_size):
            batch = rows[start:start + batch_size]
            db.add_all([Question(**row) for row in batch])
            db.flush()
            pending += len(batch)
            if not transactional:
                db.commit()
                committed += pending
                pending = 0
            logger.info("Inserted batch of %d questions", len(batch))
        if transactional:
            db.commit()
            committed, pending = pending, 0
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("Insert error after %d committed questions: %s", committed, e)
        raise InsertionError(f"Failed to insert questions: {e}", committed=committed) from e
    return committed


def ingest(
    db: Session,
    payload: Any,
    transactional: Optional[bool] = None,
    batch_size: Optional[int] = None,
) -> int:
    """
    Validate, de-duplicate and store an uploaded question set.

    Args:
        db: Database session
        payload: Decoded upload document
        transactional: Insert every batch in a single transaction (default from settings).
            When False each batch is committed on its own.
        batch_size: Rows per insert batch (default from settings)

    Returns:
        Number of questions inserted

    Raises:
        MalformedInputError: Bad payload or record
        DuplicateQuestionsError: Some question texts already exist; nothing is inserted
        InsertionError: A batch failed; ``committed`` tells how many rows were kept
    """
    if transactional is None:
        transactional = settings.INGEST_TRANSACTIONAL
    batch_size = batch_size or settings.INGEST_BATCH_SIZE

    records = validate_payload(payload)

    duplicates = find_duplicates(db, records)
    if duplicates:
        logger.warning("Upload rejected: %d duplicate questions", len(duplicates))
        raise DuplicateQuestionsError(duplicates, "Duplicate questions found")

    rows = [
        transform_record(record, index, payload["exam_name"], payload["subject"])
        for index, record in enumerate(records)
    ]

    inserted = _insert_batches(db, rows, batch_size, transactional)
    logger.info(
        "Ingested %d questions for %s - %s", inserted, payload["exam_name"], payload["subject"]
    )
    return inserted


def ingest_json(db: Session, content: str, **kwargs) -> int:
    """Decode an uploaded JSON document and ingest it."""
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as e:
        raise MalformedInputError(
            f"Invalid JSON format: {e.msg}. Please check for extra commas, "
            "missing brackets, or other syntax errors."
        ) from e
    return ingest(db, payload, **kwargs)
