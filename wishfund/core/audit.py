"""Audit logging for critical operations."""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any

from fastapi import Request


logger = logging.getLogger("wishfund.audit")

_SENSITIVE_KEYS = ("password", "token", "secret", "key", "authorization")


class AuditAction(str, Enum):
    """Audit action types."""
    # Authentication
    SIGNUP = "signup"
    SIGNIN = "signin"
    SIGNIN_FAILED = "signin_failed"

    # Wish operations
    WISH_CREATE = "wish_create"
    WISH_UPDATE = "wish_update"
    WISH_DELETE = "wish_delete"
    WISH_COPY = "wish_copy"

    # Offer operations
    OFFER_CREATE = "offer_create"
    OFFER_REVISE = "offer_revise"
    OFFER_DELETE_DENIED = "offer_delete_denied"

    # Wishlist operations
    WISHLIST_CREATE = "wishlist_create"
    WISHLIST_UPDATE = "wishlist_update"
    WISHLIST_DELETE = "wishlist_delete"


def _sanitize(details: dict[str, Any]) -> dict[str, Any]:
    sanitized = {}
    for key, value in details.items():
        if key in _SENSITIVE_KEYS:
            sanitized[key] = "***REDACTED***"
        elif isinstance(value, Decimal):
            sanitized[key] = str(value)
        else:
            sanitized[key] = value
    return sanitized


def audit_log(
    action: AuditAction,
    request: Request | None = None,
    user_id: int | str | None = None,
    details: dict[str, Any] | None = None,
    success: bool = True,
) -> None:
    """
    Log an audit event.

    Args:
        action: The action being performed
        request: FastAPI request object (for IP, user agent)
        user_id: ID of the user performing the action
        details: Additional details about the action
        success: Whether the action was successful
    """
    event: dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "action": action.value,
        "success": success,
    }

    if user_id is not None:
        event["user_id"] = str(user_id)

    if request:
        client_host = request.client.host if request.client else None
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            client_host = forwarded.split(",")[0].strip()

        event["ip"] = client_host
        event["user_agent"] = request.headers.get("User-Agent", "")[:200]
        event["request_id"] = request.headers.get("X-Request-Id", "")

    if details:
        event["details"] = _sanitize(details)

    if success:
        logger.info("AUDIT: %s", event)
    else:
        logger.warning("AUDIT: %s", event)


def audit_signup(request: Request, user_id: int, username: str) -> None:
    audit_log(AuditAction.SIGNUP, request=request, user_id=user_id, details={"username": username})


def audit_signin(request: Request, user_id: int, username: str) -> None:
    audit_log(AuditAction.SIGNIN, request=request, user_id=user_id, details={"username": username})


def audit_signin_failed(request: Request, username: str) -> None:
    audit_log(
        AuditAction.SIGNIN_FAILED,
        request=request,
        details={"username": username},
        success=False,
    )


def audit_wish_action(
    action: AuditAction,
    request: Request,
    user_id: int,
    wish_id: int,
    details: dict[str, Any] | None = None,
) -> None:
    """Log wish operation."""
    event_details: dict[str, Any] = {"wish_id": wish_id}
    if details:
        event_details.update(details)
    audit_log(action, request=request, user_id=user_id, details=event_details)


def audit_offer_action(
    action: AuditAction,
    request: Request,
    user_id: int,
    offer_id: int,
    wish_id: int | None = None,
    amount: Decimal | float | None = None,
    success: bool = True,
) -> None:
    """Log offer operation."""
    details: dict[str, Any] = {"offer_id": offer_id}
    if wish_id is not None:
        details["wish_id"] = wish_id
    if amount is not None:
        details["amount"] = amount
    audit_log(action, request=request, user_id=user_id, details=details, success=success)


def audit_wishlist_action(
    action: AuditAction,
    request: Request,
    user_id: int,
    wishlist_id: int,
    details: dict[str, Any] | None = None,
) -> None:
    """Log wishlist operation."""
    event_details: dict[str, Any] = {"wishlist_id": wishlist_id}
    if details:
        event_details.update(details)
    audit_log(action, request=request, user_id=user_id, details=event_details)
