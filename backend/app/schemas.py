from __future__ import annotations

from typing import Dict, FrozenSet, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models import Player, Round, Standing


class StartSessionRequest(BaseModel):
    names: List[str]


class ManualRoundRequest(BaseModel):
    scores: Dict[int, int]
    declarer_id: Optional[int] = Field(default=None, alias="declarerId")
    game_type_id: Optional[int] = Field(default=None, alias="gameTypeId")
    kontra_ids: Optional[FrozenSet[int]] = Field(default=None, alias="kontraIds")
    sitting_out_id: Optional[int] = Field(default=None, alias="sittingOutId")

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class SplitRoundRequest(BaseModel):
    payer_id: int = Field(alias="payerId")
    amount: int

    model_config = ConfigDict(populate_by_name=True)


class RoundPreview(BaseModel):
    per_player_delta: Dict[int, int] = Field(alias="perPlayerDelta")
    display: Dict[int, str]

    model_config = ConfigDict(populate_by_name=True)


class SessionOut(BaseModel):
    session_id: str = Field(alias="sessionId")
    started: bool
    players: List[Player]
    rounds: List[Round]
    standings: List[Standing]
    leader_id: Optional[int] = Field(default=None, alias="leaderId")

    model_config = ConfigDict(populate_by_name=True)
