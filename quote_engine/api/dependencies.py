"""Dependency injection for FastAPI endpoints"""

from fastapi import Request

from quote_engine.infrastructure.clients.events import EventPublisher
from quote_engine.infrastructure.database.session import SessionLocal


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_event_publisher() -> EventPublisher:
    """Provide outbound event publisher; delivery outcomes are written with a fresh session"""
    return EventPublisher(session_factory=SessionLocal)
