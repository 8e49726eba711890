from fastapi import APIRouter, Depends

from app.dependencies import get_connection_manager, get_current_user_id
from app.models.schemas import AcceptConnectionRequest, ConnectionModel, ConnectionRequest
from app.services.connection_manager import ConnectionManager, parse_user_id
from app.utils.exceptions import ExceptionContext
from app.utils.logging_config import get_logger

router = APIRouter()
logger = get_logger(__name__)


@router.post("/request", status_code=201)
async def send_request(
    payload: ConnectionRequest,
    user_id: int = Depends(get_current_user_id),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    """Send a connection request to another user"""
    addressee_id = parse_user_id(payload.addressee_id, "addresseeId")
    with ExceptionContext("send_connection_request", logger, user_id=user_id):
        connection = await manager.send_request(user_id, addressee_id)
    return {"message": "Connection request sent.", "connection": ConnectionModel(**connection)}


@router.get("/pending")
async def get_pending_requests(
    user_id: int = Depends(get_current_user_id),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    """Incoming requests waiting for the caller"""
    with ExceptionContext("fetch_pending_requests", logger, user_id=user_id):
        requests = await manager.pending_received(user_id)
    return {"pendingRequests": [ConnectionModel(**r) for r in requests]}


@router.get("/sent")
async def get_sent_requests(
    user_id: int = Depends(get_current_user_id),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    """Outgoing requests the caller is waiting on"""
    with ExceptionContext("fetch_sent_requests", logger, user_id=user_id):
        requests = await manager.pending_sent(user_id)
    return {"sentRequests": [ConnectionModel(**r) for r in requests]}


@router.post("/accept")
async def accept_request(
    payload: AcceptConnectionRequest,
    user_id: int = Depends(get_current_user_id),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    """Accept a pending request addressed to the caller"""
    requester_id = parse_user_id(payload.requester_id, "requesterId")
    with ExceptionContext("accept_connection_request", logger, user_id=user_id):
        connection = await manager.accept_request(requester_id, user_id)
    return {"message": "Connection request accepted.", "connection": ConnectionModel(**connection)}


@router.delete("/{connection_id}")
async def decline_or_cancel_request(
    connection_id: str,
    user_id: int = Depends(get_current_user_id),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    """Decline or cancel a pending request, or leave an accepted connection"""
    with ExceptionContext("decline_connection_request", logger, user_id=user_id):
        await manager.decline_or_cancel(connection_id, user_id)
    return {"message": "Connection request declined/cancelled successfully."}


@router.get("/active")
async def get_active_connections(
    user_id: int = Depends(get_current_user_id),
    manager: ConnectionManager = Depends(get_connection_manager),
):
    """User ids the caller is connected with"""
    with ExceptionContext("fetch_active_connections", logger, user_id=user_id):
        connections = await manager.active_connections(user_id)
    return {"activeConnections": connections}
