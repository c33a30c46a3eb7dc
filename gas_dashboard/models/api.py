from __future__ import annotations

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class SimulationRequest(BaseModel):
    """
    Body of POST /api/simulate-transaction.

    Both fields are optional at the schema level so that missing values
    reach the query service and come back as a 400 with a readable message.
    """

    model_config = ConfigDict(populate_by_name=True)

    value: Optional[float] = None
    gas_limit: Optional[int] = Field(default=None, alias="gasLimit")


class ChainCost(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    fee_cost: float = Field(alias="feeCost")
    cost_in_native_unit: float = Field(alias="costInNativeUnit")
    cost_in_quote_currency: float = Field(alias="costInQuoteCurrency")


class SimulationResult(BaseModel):
    """Per-chain cost of one transaction, plus the quote price used."""

    quote_price: float
    chains: Dict[str, ChainCost] = {}

    def to_response(self) -> dict:
        return {chain: cost.model_dump(by_alias=True) for chain, cost in self.chains.items()}
