"""Validation utilities."""
from fastapi import HTTPException


def validate_id(name: str, value: str) -> str:
    """Validate ID string (hex identifiers only)."""
    if not isinstance(value, str):
        raise HTTPException(status_code=400, detail=f"{name} is required")
    cleaned = value.strip()
    if not cleaned:
        raise HTTPException(status_code=400, detail=f"{name} is required")
    if len(cleaned) > 64 or not cleaned.isalnum():
        raise HTTPException(status_code=400, detail=f"Invalid {name}")
    return cleaned


def validate_title(value: str) -> str:
    """Validate and normalize a test title."""
    title = (value or "").strip()
    if not title:
        raise HTTPException(status_code=400, detail="Title is required")
    if len(title) > 200:
        raise HTTPException(status_code=400, detail="Title is too long")
    return title
