import re
from typing import List

SPECIAL_CHARACTERS = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]")


def password_policy_violations(password: str) -> List[str]:
    """All reasons ``password`` is too weak; empty when it is acceptable"""
    reasons = []
    if len(password) < 8:
        reasons.append("Password must be at least 8 characters")
    if not re.search(r"[a-z]", password):
        reasons.append("Password must contain a lowercase letter")
    if not re.search(r"[A-Z]", password):
        reasons.append("Password must contain an uppercase letter")
    if not re.search(r"\d", password):
        reasons.append("Password must contain a number")
    if not SPECIAL_CHARACTERS.search(password):
        reasons.append("Password must contain a special character")
    return reasons
