"""Blockchain record models shuttled between the node and the cache"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class BlockExtended(BaseModel):
    """Block descriptor with indexing extras"""

    model_config = ConfigDict(extra="allow")

    id: str = Field(..., description="Block hash")
    height: int = Field(..., ge=0, description="Block height")
    timestamp: int = Field(..., description="Block timestamp")
    tx_count: int = Field(default=0, description="Number of transactions")
    size: int = Field(default=0, description="Block size in bytes")
    weight: int = Field(default=0, description="Block weight")
    previousblockhash: Optional[str] = Field(None, description="Parent block hash")
    extras: Dict[str, Any] = Field(default_factory=dict, description="Fee/reward statistics")


class TransactionStripped(BaseModel):
    """Condensed transaction entry used in block summaries"""

    model_config = ConfigDict(extra="allow")

    txid: str = Field(..., description="Transaction ID")
    fee: int = Field(..., description="Fee in satoshis")
    vsize: float = Field(..., description="Virtual size")
    value: int = Field(..., description="Total output value in satoshis")
    rate: Optional[float] = Field(None, description="Effective fee rate (sat/vB)")


class BlockSummary(BaseModel):
    """Per-block summary: the block hash and its stripped transactions"""

    model_config = ConfigDict(extra="allow")

    id: str = Field(..., description="Block hash")
    transactions: List[TransactionStripped] = Field(default_factory=list)


class TransactionExtended(BaseModel):
    """Unconfirmed transaction as tracked by the mempool"""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    txid: str = Field(..., description="Transaction ID")
    fee: int = Field(..., description="Fee in satoshis")
    weight: int = Field(..., description="Transaction weight")
    vsize: float = Field(..., description="Virtual transaction size")
    fee_per_vsize: float = Field(default=0.0, alias="feePerVsize", description="Fee rate (sat/vB)")
    first_seen: Optional[int] = Field(None, alias="firstSeen", description="Unix time first seen")
