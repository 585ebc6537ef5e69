# ereader/models.py
from pydantic import BaseModel, ConfigDict, Field


class SavePositionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    book_id: int = Field(alias="bookId")
    # Range is checked by ReadingPositionStore so the error surfaces as InvalidPosition.
    position: float


class PositionAck(BaseModel):
    success: bool = True


class ReadingPosition(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    book_id: int = Field(alias="bookId")
    position: float = 0.0
