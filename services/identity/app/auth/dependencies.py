"""
Identity service — auth-specific FastAPI dependencies.

These wrap the shared auth dependencies and add identity-service context
(store access, token issuer, role guards that consult the database).
"""
from __future__ import annotations

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from shared.auth.dependencies import (
    get_current_user_optional,
    get_current_user_required,
)
from shared.models.user import CurrentUser

from app.auth.constants import UserRole
from app.auth.models import User
from app.auth.store import UserStore
from app.auth.tokens import TokenIssuer
from app.config import Settings, get_settings
from app.database import get_db
from app.exceptions import AdminRequired, NotAuthenticated


# ── Base user dependencies ────────────────────────────────────────────────────

# Alias the shared dependencies so routes import from here, not from shared
# directly.  If we ever need to augment them (e.g. DB lookup), only this
# file changes.
get_current_user = get_current_user_required
get_optional_user = get_current_user_optional


# ── Collaborators ─────────────────────────────────────────────────────────────

def get_user_store(session: AsyncSession = Depends(get_db)) -> UserStore:
    return UserStore(session)


def get_token_issuer(settings: Settings = Depends(get_settings)) -> TokenIssuer:
    return TokenIssuer.from_settings(settings)


# ── Role guards ───────────────────────────────────────────────────────────────

async def require_admin(
    current_user: CurrentUser = Depends(get_current_user),
    store: UserStore = Depends(get_user_store),
) -> User:
    """
    Raise 403 unless the caller is currently an admin.

    The role is re-read from the store rather than trusted from the access
    token snapshot, so a demotion takes effect on the next request.
    """
    user = await store.find_by_id(current_user.id)
    if user is None or not user.is_active:
        raise NotAuthenticated()
    if user.role != UserRole.ADMIN:
        raise AdminRequired()
    return user
