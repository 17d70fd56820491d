"""
Profile CRUD operations.
Read-only: profiles are owned by the auth provider.
"""
from __future__ import annotations

import uuid
from collections.abc import Iterable

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from airwaves.crud.base import CRUDBase, as_uuid
from airwaves.models.profile import Profile
from airwaves.schemas.notification import ActorProfile


class CRUDProfile(CRUDBase[Profile]):

    async def lookup(
        self, db: AsyncSession, user_id: uuid.UUID | str
    ) -> ActorProfile | None:
        """Return display fields for ``user_id``, or None when not found."""
        key = as_uuid(user_id)
        if key is None:
            return None
        result = await db.execute(
            select(
                Profile.id,
                Profile.display_name,
                Profile.username,
                Profile.profile_picture,
            ).where(Profile.id == key)
        )
        row = result.one_or_none()
        if row is None:
            return None
        return ActorProfile(
            id=row.id,
            display_name=row.display_name,
            username=row.username,
            profile_picture=row.profile_picture,
        )

    async def ids_for_usernames(
        self, db: AsyncSession, usernames: Iterable[str]
    ) -> list[uuid.UUID]:
        names = [name.lower() for name in usernames]
        if not names:
            return []
        result = await db.execute(
            select(Profile.id).where(func.lower(Profile.username).in_(names))
        )
        return list(result.scalars().all())

    async def existing_ids(
        self, db: AsyncSession, ids: Iterable[uuid.UUID | str]
    ) -> list[uuid.UUID]:
        keys = [key for key in (as_uuid(i) for i in ids) if key is not None]
        if not keys:
            return []
        result = await db.execute(select(Profile.id).where(Profile.id.in_(keys)))
        return list(result.scalars().all())


crud_profile = CRUDProfile(Profile)
