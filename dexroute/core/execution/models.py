"""
Swap execution results.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional

from ..swap.models import Quote, Savings


class ExecutionStatus(str, Enum):
    CONFIRMED = "confirmed"      # Receipt seen with status 1
    PENDING = "pending"          # Submitted; confirmation budget exhausted


@dataclass
class ExecutionResult:
    """Outcome of a submitted swap or approval."""
    status: ExecutionStatus
    tx_hash: str
    network_id: int
    wallet_address: str
    quote: Optional[Quote] = None
    savings: Optional[Savings] = None
    confirmed_block: Optional[int] = None
    gas_used: Optional[int] = None
    explorer_url: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def is_confirmed(self) -> bool:
        return self.status == ExecutionStatus.CONFIRMED

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "status": self.status.value,
            "tx_hash": self.tx_hash,
            "network_id": self.network_id,
            "wallet_address": self.wallet_address,
            "confirmed_block": self.confirmed_block,
            "gas_used": self.gas_used,
            "explorer_url": self.explorer_url,
        }
        if self.quote is not None:
            data["quote_provenance"] = self.quote.provenance()
        if self.savings is not None:
            data["savings"] = self.savings.to_dict()
        if self.extra:
            data.update(self.extra)
        return data
