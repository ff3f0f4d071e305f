"""User profile provisioning and followed topics."""

from __future__ import annotations

import json
import logging
from pathlib import Path

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from edushare.content.models import normalize_tags
from edushare.errors import FieldError, PersistenceError, RecordNotFoundError, ValidationError
from edushare.storage.database import get_session
from edushare.storage.models import UserProfile

logger = logging.getLogger(__name__)


def provision_user(
    db_path: Path, uid: str, email: str, display_name: str | None = None
) -> tuple[UserProfile, bool]:
    """Create the profile for ``uid`` unless it already exists.

    Returns the stored profile and whether this call created it. Calling it
    again for the same uid changes nothing.
    """
    errors = []
    if not uid:
        errors.append(FieldError("uid", "Missing uid."))
    if not email:
        errors.append(FieldError("email", "Missing email."))
    if errors:
        raise ValidationError(errors)

    try:
        with get_session(db_path) as session:
            existing = session.get(UserProfile, uid)
            if existing is not None:
                return existing, False

            profile = UserProfile(uid=uid, email=email, display_name=display_name or None)
            session.add(profile)
            session.commit()
    except IntegrityError:
        # Another caller created it between our read and our write
        with get_session(db_path) as session:
            return session.get(UserProfile, uid), False
    except SQLAlchemyError as exc:
        raise PersistenceError(f"Could not provision user {uid}: {exc}") from exc

    logger.info("Provisioned user profile %s", uid)
    return profile, True


def get_profile(db_path: Path, uid: str) -> UserProfile | None:
    with get_session(db_path) as session:
        return session.get(UserProfile, uid)


def _set_topics(db_path: Path, uid: str, change) -> UserProfile:
    with get_session(db_path) as session:
        profile = session.get(UserProfile, uid)
        if profile is None:
            raise RecordNotFoundError(f"No user profile {uid}")
        profile.followed_topics_json = json.dumps(change(profile.followed_topics))
        session.add(profile)
        session.commit()
        return profile


def follow_topic(db_path: Path, uid: str, topic: str) -> UserProfile:
    return _set_topics(db_path, uid, lambda topics: normalize_tags([*topics, topic]))


def unfollow_topic(db_path: Path, uid: str, topic: str) -> UserProfile:
    wanted = topic.strip().lower()
    return _set_topics(db_path, uid, lambda topics: [t for t in topics if t != wanted])
