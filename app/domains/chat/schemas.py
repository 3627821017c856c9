from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    art_id: int
    message: str = Field(..., min_length=1, max_length=1000)


class ChatResponse(BaseModel):
    reply: str
    credits_balance: int
