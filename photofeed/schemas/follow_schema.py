from pydantic import BaseModel, ConfigDict
from datetime import datetime

class FollowRequest(BaseModel):
    following_id: int

class FollowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    follower_id: int
    following_id: int
    created_at: datetime

class FollowCreateResponse(BaseModel):
    success: bool = True
    follow: FollowResponse

class FollowDeleteResponse(BaseModel):
    success: bool = True
