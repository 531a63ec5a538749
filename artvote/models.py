from typing import List
from pydantic import BaseModel, ConfigDict, Field


class VoteIn(BaseModel):
    # "3" or true must not pass as an image id
    model_config = ConfigDict(strict=True)

    user_address: str = Field(..., examples=["10.0.0.7"])
    iteration: int = Field(..., examples=[3])
    images: List[int] = Field(..., examples=[[1, 4]])


class IterationOut(BaseModel):
    """
    Current iteration. The number is sent as a string, which is what
    existing clients parse.
    """
    iteration: str


class CycleStatus(BaseModel):
    iteration: int
    voters: int
    cycle_running: bool
    trigger: str
