"""
Types de la feature 'payments': statuts locaux et corps JSON échangés avec le client et la passerelle.
"""
from enum import Enum
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

class PaymentStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"

class CheckoutRequest(BaseModel):
    """Corps de POST /api/v1/payments/preference: {photo_ids: [...], user_id: "..."}."""
    photo_ids: List[str] = Field(default_factory=list)
    user_id: Optional[str] = None

    @field_validator("photo_ids", mode="before")
    @classmethod
    def _clean_ids(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        if not isinstance(v, (list, tuple)):
            raise ValueError("photo_ids doit être une liste d'identifiants")
        return [str(i).strip() for i in v if str(i or "").strip()]

class PreferenceResponse(BaseModel):
    preference_id: str
    init_point: str
    payment_id: str

class NotificationData(BaseModel):
    model_config = ConfigDict(extra="allow")
    id: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, v):
        return None if v is None else str(v)

class WebhookNotification(BaseModel):
    """Notification Mercado Pago: seuls 'type' et 'data.id' sont exploités, le reste est ignoré."""
    model_config = ConfigDict(extra="allow")
    type: Optional[str] = None
    data: Optional[NotificationData] = None
