# app/routers/referral.py
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.clients.token_gateway import TokenGateway, get_token_gateway
from app.core.config import settings
from app.core.exceptions import (
    InvalidRewardValueError,
    MissingWalletError,
    NoReferrerError,
    StoreError,
)
from app.dependencies import get_current_user, get_db
from app.models.user import User
from app.schemas.referral import DistributionResult, ReferralEntry, RewardRequest
from app.services import referral as referral_service

logger = logging.getLogger(__name__)

router = APIRouter()

# HTTP-код ответа по исходу прямой награды
DIRECT_STATUS_CODES = {
    "completed": status.HTTP_200_OK,
    "duplicate": status.HTTP_200_OK,
    "skipped": status.HTTP_200_OK,
    "unknown": status.HTTP_202_ACCEPTED,
    "failed": status.HTTP_502_BAD_GATEWAY,
}


@router.get("/referrals", response_model=List[ReferralEntry])
def get_referrals(
    id: int | None = Query(default=None, description="ID реферера; без него - все связи"),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    return referral_service.get_all_referrals(db, referrer_id=id)


@router.post("/rewards/distribute", response_model=DistributionResult)
async def distribute_reward(
    data: RewardRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    gateway: TokenGateway = Depends(get_token_gateway),
):
    """
    Начисляет награды за покупку текущего (приглашенного) пользователя.
    Исход каждой ступени возвращается отдельно: 200 - прямая награда выплачена
    (или уже была), 202 - исход неизвестен, 502 - прямой перевод не прошел.
    """
    try:
        result = await referral_service.distribute_reward(
            db,
            referred_user_id=current_user.id,
            gross_value=data.value,
            event_id=data.event_id,
            gateway=gateway,
            timeout=settings.TRANSFER_TIMEOUT_SECONDS,
        )
    except NoReferrerError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Referral does not exist")
    except (MissingWalletError, InvalidRewardValueError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except StoreError:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Storage is unavailable, retry later")

    return JSONResponse(
        status_code=DIRECT_STATUS_CODES[result.direct.status],
        content=result.model_dump(mode="json"),
    )
