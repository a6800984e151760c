from __future__ import annotations
from typing import Dict, FrozenSet, List, Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator


class Player(BaseModel):
    id: int
    name: str
    score: int = 0

    model_config = ConfigDict(populate_by_name=True)


class GameTypeDef(BaseModel):
    id: int
    name: str
    base_value: str = Field(alias="baseValue")  # composite point string, e.g. "4+1"
    colorless: bool = False

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class Declaration(BaseModel):
    declarer_id: Optional[int] = Field(default=None, alias="declarerId")
    game_type_id: int = Field(alias="gameTypeId")
    won: bool
    kontra_ids: FrozenSet[int] = Field(default_factory=frozenset, alias="kontraIds")
    sitting_out_id: Optional[int] = Field(default=None, alias="sittingOutId")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    def metadata(self) -> "RoundMetadata":
        return RoundMetadata(
            declarer_id=self.declarer_id,
            game_type_id=self.game_type_id,
            kontra_ids=self.kontra_ids,
            sitting_out_id=self.sitting_out_id,
        )


class RoundMetadata(BaseModel):
    declarer_id: Optional[int] = Field(default=None, alias="declarerId")
    game_type_id: Optional[int] = Field(default=None, alias="gameTypeId")
    kontra_ids: Optional[FrozenSet[int]] = Field(default=None, alias="kontraIds")
    sitting_out_id: Optional[int] = Field(default=None, alias="sittingOutId")

    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class Round(BaseModel):
    round_number: int = Field(alias="roundNumber", ge=1)
    per_player_delta: Dict[int, int] = Field(alias="perPlayerDelta")
    declarer_id: Optional[int] = Field(default=None, alias="declarerId")
    game_type_id: Optional[int] = Field(default=None, alias="gameTypeId")
    kontra_ids: Optional[FrozenSet[int]] = Field(default=None, alias="kontraIds")
    sitting_out_id: Optional[int] = Field(default=None, alias="sittingOutId")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @field_validator("kontra_ids", mode="after")
    @classmethod
    def empty_kontra_is_none(cls, value):
        # an empty kontra set is stored as "no kontra"
        if value is not None and not value:
            return None
        return value


class SessionSnapshot(BaseModel):
    started: bool = False
    players: List[Player] = Field(default_factory=list)
    rounds: List[Round] = Field(default_factory=list)

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Standing(BaseModel):
    rank: int
    player_id: int = Field(alias="playerId")
    name: str
    score: int
    leader: bool = False

    model_config = ConfigDict(populate_by_name=True)
