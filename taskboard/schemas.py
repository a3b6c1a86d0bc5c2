from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class RequestModel(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)


class Health(BaseModel):
    status: str = "ok"


class Version(BaseModel):
    version: str


class ErrorBody(BaseModel):
    error: str


class SuccessBody(BaseModel):
    success: bool = True


# === Auth ===


class RegisterIn(RequestModel):
    email: EmailStr
    password: str = Field(min_length=1, max_length=256)
    name: str = Field(min_length=1, max_length=140)


class LoginIn(RequestModel):
    email: str = Field(min_length=1, max_length=320)
    password: str = Field(min_length=1, max_length=256)


class UserOut(BaseModel):
    id: str
    email: str
    name: str
    createdAt: datetime


class UserEnvelope(BaseModel):
    user: UserOut


class LoginOut(BaseModel):
    token: str
    user: UserOut


# === Boards ===


class BoardIn(RequestModel):
    name: str = Field(min_length=1, max_length=140)
    organizationId: Optional[str] = None


class BoardUpdate(RequestModel):
    name: str = Field(min_length=1, max_length=140)


class CardOut(BaseModel):
    id: str
    title: str
    description: Optional[str]
    listId: str
    position: float
    dueDate: Optional[datetime]
    createdAt: datetime


class ListOut(BaseModel):
    id: str
    name: str
    boardId: str
    position: float
    createdAt: datetime
    cards: list[CardOut] = []


class BoardOut(BaseModel):
    id: str
    name: str
    organizationId: str
    ownerId: str
    createdAt: datetime
    lists: list[ListOut] = []


class BoardEnvelope(BaseModel):
    board: BoardOut


class BoardsPage(BaseModel):
    boards: list[BoardOut]


# === Lists ===


class ListIn(RequestModel):
    name: str = Field(min_length=1, max_length=140)
    boardId: str = Field(min_length=1)


class ListUpdate(RequestModel):
    name: str = Field(min_length=1, max_length=140)


class ListMove(RequestModel):
    index: Optional[int] = Field(default=None, ge=0)
    beforeId: Optional[str] = None
    afterId: Optional[str] = None


class ListEnvelope(BaseModel):
    list: ListOut


# === Cards ===


class CardIn(RequestModel):
    title: str = Field(min_length=1, max_length=200)
    listId: str = Field(min_length=1)
    description: Optional[str] = Field(default=None, max_length=8000)
    dueDate: Optional[datetime] = None


class CardUpdate(RequestModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=8000)
    dueDate: Optional[datetime] = None


class CardMove(RequestModel):
    listId: Optional[str] = Field(default=None, min_length=1)
    index: Optional[int] = Field(default=None, ge=0)
    beforeId: Optional[str] = None
    afterId: Optional[str] = None


class CardEnvelope(BaseModel):
    card: CardOut
