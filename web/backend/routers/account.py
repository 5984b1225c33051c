"""Account management endpoints for WebWave Web API."""

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException
from loguru import logger

from webwave.domain.library.exceptions import (
    AccountDeletionError,
    IdentityDeletionError,
    RecordCleanupError,
    StorageCleanupError,
    TrackListingError,
)
from webwave.domain.library.workflow import TrackWorkflow
from webwave.gateway.contracts import AuthGateway

from ..deps import get_auth, get_workflow, parse_bearer_token
from ..schemas import DeleteAccountRequest, DeleteAccountResponse

router = APIRouter()

DELETION_FAILURE_MESSAGES: dict[type[AccountDeletionError], str] = {
    TrackListingError: "Failed to fetch user songs",
    StorageCleanupError: "Failed to delete files from storage",
    RecordCleanupError: "Failed to delete songs from database",
    IdentityDeletionError: "Failed to delete user",
}


@router.delete("/delete-account", response_model=DeleteAccountResponse)
def delete_account(
    req: Optional[DeleteAccountRequest] = None,
    authorization: Optional[str] = Header(default=None),
    auth: AuthGateway = Depends(get_auth),
    workflow: TrackWorkflow = Depends(get_workflow),
) -> DeleteAccountResponse:
    """Delete the caller's objects, records and identity.

    Raises:
        HTTPException: 400 without userId, 401 without a valid session,
            403 when userId is not the caller, 500 naming the failed step
    """
    user_id = req.user_id if req else None
    if not user_id:
        raise HTTPException(status_code=400, detail="User ID is required")

    token = parse_bearer_token(authorization)
    user = auth.get_user(token) if token else None
    if user is None:
        raise HTTPException(status_code=401, detail="Unauthorized")

    if user.id != user_id:
        logger.warning(f"User {user.id} tried to delete account {user_id}")
        raise HTTPException(status_code=403, detail="Unauthorized to delete this account")

    try:
        workflow.delete_account(user_id, access_token=token)
    except AccountDeletionError as e:
        logger.error(f"Account deletion failed at {e.step}: {e}")
        message = DELETION_FAILURE_MESSAGES.get(type(e), "Internal server error")
        raise HTTPException(status_code=500, detail=message) from e

    return DeleteAccountResponse(
        success=True, message="Account and all associated data deleted successfully"
    )
