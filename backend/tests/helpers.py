"""
Test helpers shared across test modules.
"""

from backend.app.core.dependencies import Principal
from backend.app.core.jwt import issue_token


def auth_headers(user) -> dict:
    token = issue_token(user.id, user.email)
    return {"Authorization": f"Bearer {token}"}


def principal(user) -> Principal:
    return Principal(user_id=user.id, role=user.role)
