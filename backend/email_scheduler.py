"""
Background confirmation re-send job using APScheduler.

A subscriber whose confirmation email failed after the subscription was
committed stays in pending_confirmation with a stored token. This job finds
those subscribers and sends the confirmation email again with their newest
token.
"""
import logging
from datetime import datetime, timedelta, timezone
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import get_settings, is_email_configured
from database import SessionLocal
import db_service
from email_service import EmailDispatchError, build_confirmation_link, get_email_client, send_confirmation_email

logger = logging.getLogger(__name__)

# Scheduler instance
scheduler = AsyncIOScheduler()


def get_db() -> Session:
    """Get a database session."""
    return SessionLocal()


async def process_pending_confirmations() -> int:
    """
    Re-send confirmation emails that never reached the provider.

    Returns:
        Number of confirmation emails sent on this run.
    """
    if not is_email_configured():
        return 0

    settings = get_settings()
    email_client = get_email_client()
    sent = 0

    db = get_db()
    try:
        cutoff_time = datetime.now(timezone.utc) - timedelta(
            minutes=settings.confirmation_resend_after_minutes
        )

        pending = db_service.get_pending_confirmations(
            db,
            cutoff=cutoff_time,
            limit=settings.confirmation_resend_batch_size,
        )

        for subscriber, token in pending:
            logger.info(f"Re-sending confirmation email to {subscriber.email}")

            confirmation_link = build_confirmation_link(settings.base_url, token.subscription_token)
            try:
                await send_confirmation_email(
                    email_client,
                    recipient=subscriber.email,
                    name=subscriber.name,
                    confirmation_link=confirmation_link,
                )
            except EmailDispatchError as e:
                logger.error(f"Failed to re-send confirmation email to {subscriber.email}: {str(e)}")
                continue

            try:
                db_service.mark_confirmation_sent(db, token.subscription_token)
                db.commit()
            except SQLAlchemyError as e:
                logger.error(f"Failed to mark confirmation sent for {subscriber.email}: {str(e)}")
                db.rollback()
            sent += 1

    except Exception as e:
        logger.error(f"Error processing pending confirmations: {str(e)}")
        db.rollback()
    finally:
        db.close()

    return sent


def start_scheduler():
    """Start the confirmation re-send scheduler."""
    if scheduler.running:
        logger.info("Scheduler already running")
        return

    interval = get_settings().confirmation_resend_interval_minutes

    scheduler.add_job(
        process_pending_confirmations,
        trigger=IntervalTrigger(minutes=interval),
        id="resend_confirmations",
        name="Re-send pending confirmation emails",
        replace_existing=True,
    )

    scheduler.start()
    logger.info(f"Confirmation scheduler started - checking every {interval} minutes")


def stop_scheduler():
    """
    Stop the confirmation re-send scheduler.

    AsyncIOScheduler runs the shutdown on the event loop, so `running` only
    turns false once the loop gets control back.
    """
    if scheduler.running:
        scheduler.shutdown()
        logger.info("Confirmation scheduler shutdown requested")
