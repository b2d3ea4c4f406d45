# planning_poker/models/messages.py
"""
Wire protocol of the ``/ws`` endpoint.

Every frame is a JSON object tagged by ``type``. Inbound frames decode into
exactly one ``Command`` variant and outbound frames are built from one
``ServerEvent`` variant; both unions are closed, so adding a frame kind means
adding a model here and a branch in the gateway.
"""
from __future__ import annotations

from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator

from planning_poker.core.exceptions import MalformedCommand
from planning_poker.models.models import RoomView

MAX_NAME_LENGTH = 64
MAX_ESTIMATE_LENGTH = 16

RoomId = Annotated[str, Field(min_length=1)]
UserId = Annotated[str, Field(min_length=1)]
DisplayName = Annotated[str, Field(min_length=1, max_length=MAX_NAME_LENGTH)]


# ============================================================================
# CLIENT -> SERVER
# ============================================================================

class _NamedCommand(BaseModel):
    @field_validator("name", mode="before", check_fields=False)
    @classmethod
    def _strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value


class JoinCommand(_NamedCommand):
    type: Literal["Join"]
    room_id: RoomId
    name: DisplayName


class RejoinCommand(_NamedCommand):
    type: Literal["Rejoin"]
    room_id: RoomId
    user_id: UserId
    name: DisplayName


class VoteCommand(BaseModel):
    type: Literal["Vote"]
    room_id: RoomId
    user_id: UserId
    estimate: str = Field(max_length=MAX_ESTIMATE_LENGTH)

    @field_validator("estimate", mode="before")
    @classmethod
    def _numbers_as_tokens(cls, value):
        # Clients may send 5 instead of "5"; the estimate is stored as a token
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return str(value)
        return value


class ShowCommand(BaseModel):
    type: Literal["Show"]
    room_id: RoomId


class ClearCommand(BaseModel):
    type: Literal["Clear"]
    room_id: RoomId


Command = Annotated[
    Union[JoinCommand, RejoinCommand, VoteCommand, ShowCommand, ClearCommand],
    Field(discriminator="type"),
]

_command_adapter: TypeAdapter[Command] = TypeAdapter(Command)


def decode_command(frame: str | bytes) -> Command:
    """
    Decode one inbound text frame.

    Raises:
        MalformedCommand: invalid JSON, unknown ``type`` or bad fields
    """
    try:
        return _command_adapter.validate_json(frame)
    except ValidationError as exc:
        error = exc.errors()[0]
        location = ".".join(str(part) for part in error["loc"])
        detail = f"{location}: {error['msg']}" if location else error["msg"]
        raise MalformedCommand(detail) from exc


# ============================================================================
# SERVER -> CLIENT
# ============================================================================

class JoinedEvent(BaseModel):
    type: Literal["Joined"] = "Joined"
    user_id: str
    room_id: str


class RoomStateEvent(BaseModel):
    type: Literal["RoomState"] = "RoomState"
    room: RoomView


class ErrorEvent(BaseModel):
    type: Literal["Error"] = "Error"
    message: str
    code: str


ServerEvent = Annotated[
    Union[JoinedEvent, RoomStateEvent, ErrorEvent],
    Field(discriminator="type"),
]


def encode_event(event: ServerEvent) -> str:
    return event.model_dump_json()
