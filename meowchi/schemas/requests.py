"""API request schemas."""

from pydantic import Field

from meowchi.schemas.common import BaseSchema


class RedeemRequest(BaseSchema):
    """Redeem (consume) today's claim."""

    claim_id: str = Field(..., alias="claimId", min_length=1, max_length=64)
