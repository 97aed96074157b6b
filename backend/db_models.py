"""
SQLAlchemy database models for the newsletter subscription service.
"""
from sqlalchemy import (
    Column, String, DateTime, ForeignKey, Enum, Boolean, Uuid
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from database import Base
import enum


class SubscriberStatus(enum.Enum):
    """Status of a newsletter subscriber."""
    PENDING_CONFIRMATION = "pending_confirmation"  # Confirmation email issued
    CONFIRMED = "confirmed"                        # Confirmation link followed


class Subscriber(Base):
    """A person who asked to receive the newsletter."""
    __tablename__ = "subscribers"

    # Generated by the caller, not the database
    id = Column(Uuid, primary_key=True)

    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(256), nullable=False)

    status = Column(
        Enum(
            SubscriberStatus,
            name="subscriber_status",
            values_callable=lambda statuses: [s.value for s in statuses],
        ),
        default=SubscriberStatus.PENDING_CONFIRMATION,
        nullable=False,
    )

    subscribed_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    tokens = relationship("SubscriptionToken", back_populates="subscriber")

    def __repr__(self):
        return f"<Subscriber {self.name} ({self.email}) - {self.status.value}>"


class SubscriptionToken(Base):
    """Single-use token embedded in a confirmation link."""
    __tablename__ = "subscription_tokens"

    subscription_token = Column(String(25), primary_key=True)
    subscriber_id = Column(Uuid, ForeignKey("subscribers.id"), nullable=False, index=True)

    # Email tracking
    confirmation_email_sent = Column(Boolean, default=False, nullable=False)
    confirmation_email_sent_at = Column(DateTime(timezone=True))

    # Timestamps
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    # Relationships
    subscriber = relationship("Subscriber", back_populates="tokens")

    def __repr__(self):
        return f"<SubscriptionToken for {self.subscriber_id}>"
