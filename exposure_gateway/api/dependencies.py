"""Dependency injection for FastAPI endpoints"""

from fastapi import Header, Request
from exposure_gateway.infrastructure.clients.events import EventClient


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_user_id(x_user_id: str = Header(..., min_length=1)) -> str:
    """Tenant identifier; every query is scoped to it"""
    return x_user_id


def get_event_client() -> EventClient:
    """Provide portfolio event webhook client instance"""
    return EventClient()
