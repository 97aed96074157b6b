"""
Database service layer for subscription persistence.

None of these functions commit. The caller owns the transaction, so a
subscriber row and its token row are committed (or rolled back) together.
"""
from sqlalchemy.orm import Session
from datetime import datetime, timezone
from typing import Optional, List, Tuple
import secrets
import string
import uuid

from db_models import Subscriber, SubscriptionToken, SubscriberStatus
from models import NewSubscriber

TOKEN_LENGTH = 25
TOKEN_ALPHABET = string.ascii_letters + string.digits


def generate_subscription_token() -> str:
    """
    Generate a random confirmation token.

    25 characters from [A-Za-z0-9] using a cryptographically secure source.
    Example: 3kQ9zLr0bWm4TfXc8VhN2pYs1
    """
    return ''.join(secrets.choice(TOKEN_ALPHABET) for _ in range(TOKEN_LENGTH))


# ============== SUBSCRIBER OPERATIONS ==============

def get_subscriber_id_by_email(db: Session, email: str) -> Optional[uuid.UUID]:
    """Get the id of the subscriber with this email, if any."""
    row = db.query(Subscriber.id).filter(Subscriber.email == email).first()
    return row[0] if row else None


def insert_subscriber(db: Session, new_subscriber: NewSubscriber) -> uuid.UUID:
    """
    Insert a new subscriber in pending_confirmation status.

    Flushes so that a unique-email conflict is raised here rather than
    at commit time.
    """
    subscriber = Subscriber(
        id=new_subscriber.id,
        email=new_subscriber.email,
        name=new_subscriber.name,
        status=SubscriberStatus.PENDING_CONFIRMATION,
        subscribed_at=new_subscriber.subscribed_at,
    )
    db.add(subscriber)
    db.flush()
    return subscriber.id


def get_or_insert_subscriber(db: Session, new_subscriber: NewSubscriber) -> uuid.UUID:
    """
    Return the id of the existing subscriber for this email, or insert one.

    Repeated calls with the same email converge on the same id. The
    existing row is left untouched (a different name is ignored).
    """
    existing_id = get_subscriber_id_by_email(db, new_subscriber.email)
    if existing_id is not None:
        return existing_id
    return insert_subscriber(db, new_subscriber)


def get_subscriber_by_token(db: Session, subscription_token: str) -> Optional[Subscriber]:
    """Get the subscriber a confirmation token was issued to."""
    return db.query(Subscriber).join(SubscriptionToken).filter(
        SubscriptionToken.subscription_token == subscription_token
    ).first()


# ============== TOKEN OPERATIONS ==============

def store_token(db: Session, subscriber_id: uuid.UUID, subscription_token: str) -> None:
    """Store a confirmation token for a subscriber."""
    token = SubscriptionToken(
        subscription_token=subscription_token,
        subscriber_id=subscriber_id,
        created_at=datetime.now(timezone.utc),
    )
    db.add(token)
    db.flush()


def mark_confirmation_sent(db: Session, subscription_token: str) -> None:
    """Record that the confirmation email for this token went out."""
    db.query(SubscriptionToken).filter(
        SubscriptionToken.subscription_token == subscription_token
    ).update(
        {
            SubscriptionToken.confirmation_email_sent: True,
            SubscriptionToken.confirmation_email_sent_at: datetime.now(timezone.utc),
        },
        synchronize_session=False,
    )


def get_pending_confirmations(
    db: Session,
    cutoff: datetime,
    limit: int = 10,
) -> List[Tuple[Subscriber, SubscriptionToken]]:
    """
    Find subscribers stuck in pending_confirmation without a delivered email.

    A subscriber qualifies when none of their tokens was ever emailed and at
    least one token was issued before `cutoff`. Each result is paired with
    the subscriber's newest token.

    Args:
        db: Database session
        cutoff: Only consider tokens issued at or before this time
        limit: Maximum number of subscribers to return

    Returns:
        List of (Subscriber, newest SubscriptionToken) tuples
    """
    subscribers = db.query(Subscriber).filter(
        Subscriber.status == SubscriberStatus.PENDING_CONFIRMATION,
        ~Subscriber.tokens.any(SubscriptionToken.confirmation_email_sent == True),
        Subscriber.tokens.any(SubscriptionToken.created_at <= cutoff),
    ).order_by(Subscriber.subscribed_at).limit(limit).all()

    pending = []
    for subscriber in subscribers:
        newest = db.query(SubscriptionToken).filter(
            SubscriptionToken.subscriber_id == subscriber.id
        ).order_by(SubscriptionToken.created_at.desc()).first()
        pending.append((subscriber, newest))

    return pending
