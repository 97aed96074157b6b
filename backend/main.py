"""
FastAPI application for the newsletter subscription service.

Provides REST API endpoints to:
- Subscribe to the newsletter (sends a confirmation email)
- Check that the service is up
"""
import logging
from typing import Optional

from fastapi import FastAPI, Form, Depends, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import Response
from sqlalchemy.orm import Session

from config import get_settings

# Database imports
from database import get_db, init_db

# Email service
from email_service import EmailClient, EmailDispatchError, get_email_client, close_email_client

# Confirmation re-send scheduler
from email_scheduler import start_scheduler, stop_scheduler

from models import SubscriberValidationError
import subscription_service
from subscription_service import PersistenceError

logger = logging.getLogger(__name__)


# Initialize FastAPI app
app = FastAPI(
    title="Newsletter Subscription API",
    description="Backend API for newsletter signups and confirmation emails",
    version="1.0.0",
)


@app.on_event("startup")
async def startup_event():
    """Initialize logging and database, start the re-send scheduler."""
    logging.basicConfig(
        level=get_settings().log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    init_db()
    # Fails startup when the configured sender is not a valid address
    get_email_client()
    start_scheduler()


@app.on_event("shutdown")
async def shutdown_event():
    """Stop the scheduler and release the email client."""
    stop_scheduler()
    await close_email_client()


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are a plain 400 with no body."""
    logger.warning(f"Malformed request to {request.url.path}: {exc.errors()}")
    return Response(status_code=400)


@app.get("/health_check")
async def health_check():
    """Liveness probe."""
    return Response(status_code=200)


# =============================================================================
# Subscription Endpoint
# =============================================================================

@app.post("/subscriptions")
async def subscribe(
    name: Optional[str] = Form(None),
    email: Optional[str] = Form(None),
    db: Session = Depends(get_db),
    email_client: EmailClient = Depends(get_email_client),
):
    """
    Subscribe to the newsletter.

    Accepts form fields `name` and `email`. Responds with an empty body:
    200 on success, 400 for invalid input, 500 for any other failure.
    A 500 after the email step still leaves the subscriber stored as
    pending_confirmation.
    """
    settings = get_settings()

    try:
        await subscription_service.subscribe(
            db,
            email_client,
            base_url=settings.base_url,
            name=name,
            email=email,
        )
    except SubscriberValidationError as e:
        logger.warning(f"Rejected subscription request: {e}")
        return Response(status_code=400)
    except PersistenceError as e:
        logger.error(f"Subscription not stored: {e}")
        return Response(status_code=500)
    except EmailDispatchError as e:
        logger.error(f"Subscription stored but confirmation email failed: {e}")
        return Response(status_code=500)

    return Response(status_code=200)


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
