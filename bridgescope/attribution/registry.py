from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from bridgescope.config.constants import DAPP_REGISTRY, RELAYER_ADDRESSES, WALLET_LABEL_MARKERS


@dataclass(frozen=True)
class DappContract:
    chain: str
    address: str
    role: Optional[str] = None


@dataclass(frozen=True)
class Dapp:
    id: str
    name: str
    category: str = "OTHER"
    contracts: List[DappContract] = field(default_factory=list)


class DappRegistry:
    """Address → dApp lookups. Every lookup is an exact, case-insensitive match."""

    def __init__(
        self,
        dapps: Iterable[Dapp],
        relayers: Dict[str, str] = None,
        label_markers: Dict[str, str] = None,
    ):
        self.dapps: Dict[str, Dapp] = {}
        self._by_contract: Dict[str, Dapp] = {}
        for dapp in dapps:
            self.dapps[dapp.id] = dapp
            for contract in dapp.contracts:
                key = contract.address.lower()
                owner = self._by_contract.get(key)
                if owner is not None and owner.id != dapp.id:
                    raise ValueError(
                        f"Contract {contract.address} bound to both {owner.id} and {dapp.id}"
                    )
                self._by_contract[key] = dapp
        self._relayers = {addr.lower(): dapp_id for addr, dapp_id in (relayers or {}).items()}
        self.label_markers = {marker.lower(): dapp_id for marker, dapp_id in (label_markers or {}).items()}

    @classmethod
    def from_config(cls, entries: List[dict] = None) -> "DappRegistry":
        entries = DAPP_REGISTRY if entries is None else entries
        dapps = [
            Dapp(
                id=e["id"],
                name=e["name"],
                category=e.get("category", "OTHER"),
                contracts=[DappContract(**c) for c in e.get("contracts", [])],
            )
            for e in entries
        ]
        return cls(dapps, relayers=RELAYER_ADDRESSES, label_markers=WALLET_LABEL_MARKERS)

    def get(self, dapp_id: str) -> Optional[Dapp]:
        return self.dapps.get(dapp_id)

    def by_contract(self, address: Optional[str]) -> Optional[Dapp]:
        if not address:
            return None
        return self._by_contract.get(address.lower())

    def by_relayer(self, address: Optional[str]) -> Optional[str]:
        if not address:
            return None
        return self._relayers.get(address.lower())
