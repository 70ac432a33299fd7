"""
Admin gate for the manual grading triggers.

GRADING_API_KEYS holds comma-separated ``key:role`` pairs, e.g.
``GRADING_API_KEYS=abc123:admin,def456:moderator``.  Admins and moderators
may trigger grading; any other role is refused.
"""

import os
from typing import Dict, Optional

from dotenv import load_dotenv
from fastapi import HTTPException, Security, status
from fastapi.security import APIKeyHeader

load_dotenv()

API_KEY_HEADER = APIKeyHeader(name="X-API-Key", auto_error=False)

GRADING_ROLES = ("admin", "moderator")


def load_api_key_roles(raw: Optional[str] = None) -> Dict[str, str]:
    """Parse ``key:role`` pairs; a key without a role gets no privileges."""
    if raw is None:
        raw = os.getenv("GRADING_API_KEYS", "")
    roles = {}
    for entry in raw.split(","):
        key, _, role = entry.partition(":")
        key = key.strip()
        if key:
            roles[key] = role.strip().lower() or "none"
    return roles


async def verify_admin_api_key(api_key: Optional[str] = Security(API_KEY_HEADER)) -> str:
    """Return the caller's role; 401 without a known key, 403 without a grading role."""
    role = load_api_key_roles().get(api_key) if api_key else None
    if role is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required. Include a valid 'X-API-Key' header.",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if role not in GRADING_ROLES:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied. Admin or moderator role required.",
        )

    return role
