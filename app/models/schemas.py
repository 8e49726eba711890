from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, Optional
from datetime import datetime

# -------- Saved profiles --------
class SaveProfileRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    profile_data: Optional[Dict[str, Any]] = Field(default=None, alias="profileData")

# -------- Connections --------
class ConnectionModel(BaseModel):
    connection_id: str
    requester_id: int
    addressee_id: int
    status: str = "pending"   # pending, accepted
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

class ConnectionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    addressee_id: Any = Field(default=None, alias="addresseeId")

class AcceptConnectionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    requester_id: Any = Field(default=None, alias="requesterId")

# -------- Jobs --------
class JobModel(BaseModel):
    job_id: str
    job_title: str
    company_name: Optional[str] = None
    job_url: str
    description_html: Optional[str] = None
    created_at: Optional[datetime] = None
