"""
Connection Management Service for co-founder connection requests
"""
from typing import Any, Dict, List

from pymongo.errors import DuplicateKeyError

from app.services.stores import ConnectionStore, STATUS_ACCEPTED, STATUS_PENDING
from app.utils.exceptions import BusinessLogicError, NotFoundError, ValidationError
from app.utils.logging_config import get_logger

logger = get_logger(__name__)


def parse_user_id(value: Any, field: str) -> int:
    """Positive integer user id from a request value, else ValidationError."""
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{field} is required.", field=field)
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number.", field=field, value=value)
    try:
        user_id = int(str(value).strip())
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number.", field=field, value=value)
    if user_id <= 0:
        raise ValidationError(f"{field} must be a positive number.", field=field, value=value)
    return user_id


class ConnectionManager:
    """Request, accept, decline and remove connections between users"""

    STATUS_PENDING = STATUS_PENDING
    STATUS_ACCEPTED = STATUS_ACCEPTED

    def __init__(self, store: ConnectionStore):
        self.store = store

    async def send_request(self, requester_id: int, addressee_id: int) -> Dict[str, Any]:
        if requester_id == addressee_id:
            raise BusinessLogicError("Cannot connect with yourself.", rule="no_self_connection")

        existing = await self.store.get_connection_between(requester_id, addressee_id)
        if existing:
            raise BusinessLogicError(
                f"A connection or request already exists with status: {existing.get('status')}.",
                rule="one_connection_per_pair",
            )

        try:
            connection = await self.store.create_request(requester_id, addressee_id)
        except DuplicateKeyError as e:
            # lost a race with a concurrent request for the same pair
            raise BusinessLogicError(
                "Connection request already exists.", rule="one_connection_per_pair", cause=e
            ) from e
        logger.info(f"User {requester_id} sent a connection request to user {addressee_id}")
        return connection

    async def accept_request(self, requester_id: int, addressee_id: int) -> Dict[str, Any]:
        connection = await self.store.accept_request(requester_id, addressee_id)
        if not connection:
            raise NotFoundError(
                "Pending request not found, already actioned, or you are not the addressee.",
                resource="connection",
            )
        logger.info(f"User {addressee_id} accepted the connection request from user {requester_id}")
        return connection

    async def decline_or_cancel(self, connection_id: str, user_id: int) -> None:
        if not connection_id or not connection_id.strip():
            raise ValidationError("Valid connection ID is required.", field="connection_id")
        deleted = await self.store.delete_connection(connection_id, user_id)
        if not deleted:
            raise NotFoundError(
                "Connection not found or you are not authorized to perform this action.",
                resource="connection",
            )
        logger.info(f"User {user_id} declined/cancelled connection {connection_id}")

    async def pending_received(self, user_id: int) -> List[Dict[str, Any]]:
        return await self.store.get_pending_received(user_id)

    async def pending_sent(self, user_id: int) -> List[Dict[str, Any]]:
        return await self.store.get_sent_pending(user_id)

    async def active_connections(self, user_id: int) -> List[int]:
        return await self.store.get_active_connections(user_id)
