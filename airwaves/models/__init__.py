"""
ORM model package. Import all models here so Alembic autogenerate
can discover every table through the shared Base metadata.
"""
from airwaves.models.profile import Profile  # noqa: F401
from airwaves.models.forum import (  # noqa: F401
    ForumCategory,
    ForumPost,
    ForumPostReaction,
    ForumTopic,
)
from airwaves.models.notification import ForumNotification  # noqa: F401
