from pydantic import BaseModel, ConfigDict
from datetime import datetime

class LikeRequest(BaseModel):
    post_id: int

class LikeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    post_id: int
    user_id: int
    created_at: datetime

class LikeMutationResponse(BaseModel):
    success: bool = True
    like: LikeResponse
