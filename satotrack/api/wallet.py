"""Wallet ingestion API endpoints"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from satotrack.models.api import (
    IngestionFailureResponse,
    WalletRefreshRequest,
    WalletRefreshResponse,
)
from satotrack.services.ingestion import WalletIngestionService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_ingestion_service(request: Request) -> WalletIngestionService:
    return request.app.state.ingestion_service


@router.post(
    "/refresh",
    response_model=WalletRefreshResponse,
    responses={400: {"model": IngestionFailureResponse}, 503: {"model": IngestionFailureResponse}},
)
async def refresh_wallet(
    body: WalletRefreshRequest,
    service: WalletIngestionService = Depends(get_ingestion_service),
):
    """
    Ingest one address: query providers in priority order, normalize the
    first successful answer and store it when ``wallet_id`` is given.

    Example:
    ```json
    {"address": "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa", "wallet_id": "w-1"}
    ```
    """
    try:
        result = await service.refresh(body.address, body.wallet_id)
    except Exception as e:
        logger.error(f"Failed to refresh wallet: {e}", exc_info=True)
        failure = IngestionFailureResponse(error=f"Failed to process wallet data: {e}")
        return JSONResponse(status_code=500, content=failure.model_dump(mode="json", by_alias=True))

    if isinstance(result, IngestionFailureResponse):
        status = 503 if result.provider_failures else 400
        return JSONResponse(status_code=status, content=result.model_dump(mode="json", by_alias=True))

    return result
