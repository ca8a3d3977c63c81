"""User/device collaborator: who a reminder goes to and which device (if any) gets the push."""
from dataclasses import dataclass

from sqlalchemy.orm import Session

from bakery_reminders.models.device_token import DeviceToken
from bakery_reminders.models.user import User


@dataclass(frozen=True)
class Recipient:
    id: str
    name: str
    device_token: str | None = None


def get_recipient(db: Session, user_id: str) -> Recipient | None:
    """Recipient with their most recently seen device token, or None if the user does not exist."""
    user = db.get(User, user_id)
    if user is None:
        return None
    latest = (
        db.query(DeviceToken)
        .filter(DeviceToken.user_id == user_id)
        .order_by(DeviceToken.last_seen_at.desc(), DeviceToken.id.desc())
        .first()
    )
    return Recipient(id=user.id, name=user.name, device_token=latest.token if latest else None)


def list_users_with_tokens(db: Session) -> list[Recipient]:
    """Every user that has at least one device token, each with their latest token."""
    user_ids = [uid for (uid,) in db.query(DeviceToken.user_id).distinct().all()]
    out = []
    for uid in sorted(user_ids):
        recipient = get_recipient(db, uid)
        if recipient is not None and recipient.device_token:
            out.append(recipient)
    return out
