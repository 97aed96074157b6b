"""
Subscription service for the newsletter.

Runs the subscribe workflow: validate the form, persist subscriber and
token in one transaction, then send the confirmation email. The email
goes out only after the commit, so a failed send leaves the subscriber
stored in pending_confirmation (picked up later by email_scheduler).
"""
import logging
import uuid
from typing import Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

import db_service
from email_service import EmailClient, EmailDispatchError, build_confirmation_link, send_confirmation_email
from models import NewSubscriber

logger = logging.getLogger(__name__)

# One retry covers a concurrent first-time insert of the same email
# and a (very unlikely) token collision.
MAX_PERSIST_ATTEMPTS = 2


class PersistenceError(Exception):
    """Raised when the subscriber and token could not be committed."""


def persist_subscription(db: Session, new_subscriber: NewSubscriber) -> Tuple[uuid.UUID, str]:
    """
    Get-or-insert the subscriber and store a fresh token, then commit.

    Both rows are written in the same transaction. On an IntegrityError the
    transaction is rolled back and retried: the second attempt sees the
    subscriber inserted by the concurrent request, or draws a new token.

    Returns:
        tuple: (subscriber_id, subscription_token)

    Raises:
        PersistenceError: If the transaction could not be committed.
    """
    for attempt in range(1, MAX_PERSIST_ATTEMPTS + 1):
        try:
            subscriber_id = db_service.get_or_insert_subscriber(db, new_subscriber)
            subscription_token = db_service.generate_subscription_token()
            db_service.store_token(db, subscriber_id, subscription_token)
            db.commit()
            return subscriber_id, subscription_token
        except IntegrityError as e:
            db.rollback()
            if attempt == MAX_PERSIST_ATTEMPTS:
                logger.error(f"Conflict persisting subscription for {new_subscriber.email}: {str(e)}")
                raise PersistenceError("Conflict persisting subscription") from e
            logger.warning(f"Conflict persisting subscription for {new_subscriber.email}, retrying")
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Failed to persist subscription for {new_subscriber.email}: {str(e)}")
            raise PersistenceError("Failed to persist subscription") from e


def record_confirmation_sent(db: Session, subscription_token: str) -> None:
    """Mark the token as emailed. Failure here is logged, never raised."""
    try:
        db_service.mark_confirmation_sent(db, subscription_token)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.warning(f"Could not record confirmation email as sent: {str(e)}")


async def subscribe(
    db: Session,
    email_client: EmailClient,
    base_url: str,
    name: Optional[str],
    email: Optional[str],
) -> uuid.UUID:
    """
    Subscribe someone to the newsletter.

    Args:
        db: Database session for this request
        email_client: Client for the email provider
        base_url: Public base URL used in the confirmation link
        name: Raw name from the form (may be None)
        email: Raw email from the form (may be None)

    Returns:
        The subscriber id (existing or newly created)

    Raises:
        SubscriberValidationError: Bad form input. Nothing was written.
        PersistenceError: Nothing was committed.
        EmailDispatchError: Subscriber and token are committed but the
            confirmation email was not accepted by the provider.
    """
    new_subscriber = NewSubscriber.from_form(name=name, email=email)

    subscriber_id, subscription_token = persist_subscription(db, new_subscriber)

    confirmation_link = build_confirmation_link(base_url, subscription_token)
    try:
        await send_confirmation_email(
            email_client,
            recipient=new_subscriber.email,
            name=new_subscriber.name,
            confirmation_link=confirmation_link,
        )
    except EmailDispatchError:
        logger.error(
            f"Subscriber {subscriber_id} stored but confirmation email failed; "
            "left in pending_confirmation for re-send"
        )
        raise

    record_confirmation_sent(db, subscription_token)
    logger.info(f"Confirmation email sent for subscriber {subscriber_id}")
    return subscriber_id
