from __future__ import annotations

import re
from typing import Any, Dict, List

MIN_LENGTH = 8
MAX_LENGTH = 128

_UPPER = re.compile(r"[A-Z]")
_LOWER = re.compile(r"[a-z]")
_DIGIT = re.compile(r"[0-9]")
_SPECIAL = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]")

PASSWORD_REQUIREMENTS = [
    "At least 8 characters long",
    "At least one uppercase letter (A-Z)",
    "At least one lowercase letter (a-z)",
    "At least one number (0-9)",
    "At least one special character (!@#$%^&*...)",
]


def validate_password(password: str) -> Dict[str, Any]:
    password = password or ""
    errors: List[str] = []
    if len(password) < MIN_LENGTH:
        errors.append("Password must be at least 8 characters long")
    if len(password) > MAX_LENGTH:
        errors.append("Password must not exceed 128 characters")
    if not _UPPER.search(password):
        errors.append("Password must contain at least one uppercase letter")
    if not _LOWER.search(password):
        errors.append("Password must contain at least one lowercase letter")
    if not _DIGIT.search(password):
        errors.append("Password must contain at least one number")
    if not _SPECIAL.search(password):
        errors.append("Password must contain at least one special character (!@#$%^&*()_+-=[]{}|;:,.<>?)")
    return {"is_valid": not errors, "errors": errors}


def password_strength(password: str) -> Dict[str, Any]:
    password = password or ""
    score = 0
    for threshold in (8, 12, 16):
        if len(password) >= threshold:
            score += 1

    classes = [bool(p.search(password)) for p in (_LOWER, _UPPER, _DIGIT, _SPECIAL)]
    score += sum(classes)
    if all(classes):
        score += 1

    if score >= 7:
        level, color = "very strong", "green"
    elif score >= 6:
        level, color = "strong", "green"
    elif score >= 4:
        level, color = "medium", "orange"
    else:
        level, color = "weak", "red"

    return {"score": score, "level": level, "color": color, "percentage": min(score / 8 * 100, 100)}
