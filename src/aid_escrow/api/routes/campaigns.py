"""Campaigns REST API routes.

Routes:
    POST   /api/v1/campaigns        — Create a campaign and its onchain escrow
    GET    /api/v1/campaigns        — List campaigns
    GET    /api/v1/campaigns/{id}   — Get one campaign
"""

from __future__ import annotations

import uuid  # noqa: TC003 - resolved by FastAPI

from fastapi import APIRouter, Depends

from aid_escrow.api.deps import get_campaign_service
from aid_escrow.schemas.campaigns import CampaignResponse, CreateCampaignRequest
from aid_escrow.schemas.common import ApiResponse
from aid_escrow.services.campaign_service import CampaignService  # noqa: TC001

router = APIRouter(prefix="/api/v1/campaigns", tags=["Campaigns"])


@router.post(
    "",
    response_model=ApiResponse[CampaignResponse],
    status_code=201,
    summary="Create a campaign",
)
async def create_campaign(
    request: CreateCampaignRequest,
    svc: CampaignService = Depends(get_campaign_service),
) -> ApiResponse[CampaignResponse]:
    campaign = await svc.create_campaign(name=request.name, budget=request.budget)
    return ApiResponse[CampaignResponse](data=CampaignResponse.model_validate(campaign))


@router.get(
    "",
    response_model=ApiResponse[list[CampaignResponse]],
    summary="List campaigns",
)
async def list_campaigns(
    svc: CampaignService = Depends(get_campaign_service),
) -> ApiResponse[list[CampaignResponse]]:
    campaigns = await svc.list_campaigns()
    return ApiResponse[list[CampaignResponse]](
        data=[CampaignResponse.model_validate(c) for c in campaigns]
    )


@router.get(
    "/{campaign_id}",
    response_model=ApiResponse[CampaignResponse],
    summary="Get campaign details",
)
async def get_campaign(
    campaign_id: uuid.UUID,
    svc: CampaignService = Depends(get_campaign_service),
) -> ApiResponse[CampaignResponse]:
    campaign = await svc.get_campaign(campaign_id)
    return ApiResponse[CampaignResponse](data=CampaignResponse.model_validate(campaign))
