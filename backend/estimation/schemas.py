"""Inbound socket event payloads.

One model per event name; handlers validate with ``parse_event`` before
anything reaches the engine.
"""

from typing import Any, Dict, Literal, Optional, Type, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from estimation.errors import InvalidPayload
from estimation.models import NUMERIC, PRIVATE, PUBLIC, TSHIRT

CardScale = Literal['numeric', 'tshirt']


class EventModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)


class RoomEvent(EventModel):
    room_id: str = Field(alias='roomId', min_length=1)


class _SettingsFields(EventModel):
    auto_reveal: bool = Field(default=False, alias='autoReveal')
    card_scale: Optional[CardScale] = Field(default=None, alias='cardScale')
    tshirt_mode: Optional[bool] = Field(default=None, alias='tShirtMode')

    def resolved_card_scale(self) -> str:
        if self.card_scale is not None:
            return self.card_scale
        return TSHIRT if self.tshirt_mode else NUMERIC


class CreateRoomEvent(_SettingsFields):
    room_code: Optional[str] = Field(default=None, alias='roomCode')
    display_name: str = Field(validation_alias=AliasChoices('displayName', 'name'))
    is_private: bool = Field(default=False, alias='isPrivate')

    @property
    def visibility(self) -> str:
        return PRIVATE if self.is_private else PUBLIC


class JoinRoomEvent(RoomEvent):
    display_name: str = Field(validation_alias=AliasChoices('displayName', 'name'))


class JoinOrCreateRoomEvent(_SettingsFields):
    room_id: str = Field(alias='roomId', min_length=1)
    display_name: str = Field(validation_alias=AliasChoices('displayName', 'name'))
    is_private: bool = Field(default=False, alias='isPrivate')
    is_public: bool = Field(default=False, alias='isPublic')

    @property
    def visibility(self) -> str:
        # an explicit private flag wins; anything else is public
        return PRIVATE if self.is_private else PUBLIC


class VoteEvent(RoomEvent):
    value: str = Field(min_length=1)

    @field_validator('value', mode='before')
    @classmethod
    def _label(cls, value):
        # numeric cards arrive as numbers from some clients
        if isinstance(value, bool):
            raise ValueError('vote must be a card label')
        if isinstance(value, (int, float)):
            return str(value)
        return value


class SetSpectatorEvent(RoomEvent):
    spectator: bool


class SetAutoRevealEvent(RoomEvent):
    auto_reveal: bool = Field(alias='autoReveal')


class SetCardScaleEvent(RoomEvent):
    scale: CardScale


class SetTShirtModeEvent(RoomEvent):
    tshirt_mode: bool = Field(alias='tShirtMode')

    @property
    def scale(self) -> str:
        return TSHIRT if self.tshirt_mode else NUMERIC


EVENT_SCHEMAS: Dict[str, Type[EventModel]] = {
    'create-room': CreateRoomEvent,
    'join-room': JoinRoomEvent,
    'join-or-create-room': JoinOrCreateRoomEvent,
    'vote': VoteEvent,
    'reveal': RoomEvent,
    'reset': RoomEvent,
    'set-spectator': SetSpectatorEvent,
    'set-auto-reveal': SetAutoRevealEvent,
    'set-card-scale': SetCardScaleEvent,
    'set-tshirt-mode': SetTShirtModeEvent,
    'leave-room': RoomEvent,
}


def parse_event(event: str, data: Union[Dict[str, Any], str, None]) -> EventModel:
    """Validate ``data`` for ``event``; raise InvalidPayload otherwise.

    ``reveal`` and ``reset`` may also carry the bare room id as a string.
    """
    schema = EVENT_SCHEMAS[event]
    if isinstance(data, str):
        data = {'roomId': data}
    try:
        return schema.model_validate(data or {})
    except ValidationError as exc:
        raise InvalidPayload(event) from exc
