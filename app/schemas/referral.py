# app/schemas/referral.py
from datetime import datetime
from typing import Literal
from pydantic import BaseModel, ConfigDict, Field

TierStatus = Literal["completed", "failed", "unknown", "skipped", "duplicate"]

class ReferralParty(BaseModel):
    id: int
    first_name: str
    last_name: str
    role: str
    referral_code: str | None = None

    model_config = ConfigDict(from_attributes=True)

class ReferralEntry(BaseModel):
    id: int
    referrer_id: int
    referred_id: int
    created_at: datetime | None = None
    referrer: ReferralParty
    referred: ReferralParty

    model_config = ConfigDict(from_attributes=True)

class RewardRequest(BaseModel):
    # Строка, чтобы большие суммы в wei не теряли точность в JSON
    value: str = Field(..., pattern=r"^\d+$", description="Сумма в минимальных единицах токена")
    # Ключ идемпотентности исходного события (например, ID покупки)
    event_id: str = Field(..., min_length=1, max_length=128)

class TierOutcome(BaseModel):
    tier: Literal["direct", "root"]
    status: TierStatus
    amount: str = "0"
    recipient_id: int | None = None
    transaction_id: int | None = None
    transaction_hash: str | None = None
    reason: str | None = None

class DistributionResult(BaseModel):
    direct: TierOutcome
    root: TierOutcome
