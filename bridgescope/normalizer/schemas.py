"""
Inbound payload shapes.

Ledger-chain transactions arrive as enhanced-transaction webhooks (camelCase
keys); contract-chain events arrive from the subgraph. Unknown keys are
ignored so provider additions do not break ingestion.
"""
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

RawAmount = Union[int, str, float]


class _Camel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class Instruction(_Camel):
    program_id: str = Field(alias="programId")
    accounts: List[str] = Field(default_factory=list)
    data: Optional[str] = None


class AccountData(_Camel):
    account: str
    native_balance_change: int = Field(0, alias="nativeBalanceChange")


class TokenTransferEvent(_Camel):
    mint: Optional[str] = None
    from_user_account: Optional[str] = Field(None, alias="fromUserAccount")
    to_user_account: Optional[str] = Field(None, alias="toUserAccount")
    token_amount: Optional[RawAmount] = Field(None, alias="tokenAmount")
    decimals: Optional[int] = None


class TransactionEvents(_Camel):
    token_transfers: List[TokenTransferEvent] = Field(default_factory=list, alias="tokenTransfers")
    transfers: List[TokenTransferEvent] = Field(default_factory=list)


class LedgerTransaction(_Camel):
    signature: str
    slot: int
    timestamp: int
    instructions: List[Instruction] = Field(default_factory=list)
    account_data: List[AccountData] = Field(default_factory=list, alias="accountData")
    events: Optional[TransactionEvents] = None

    def first_token_transfer(self) -> Optional[TokenTransferEvent]:
        if self.events is None:
            return None
        if self.events.token_transfers:
            return self.events.token_transfers[0]
        if self.events.transfers:
            return self.events.transfers[0]
        return None


class WebhookPayload(_Camel):
    transactions: List[LedgerTransaction]

    @classmethod
    def parse(cls, body) -> "WebhookPayload":
        """Accepts ``{"transactions": [...]}`` or a bare list of transactions."""
        if isinstance(body, list):
            body = {"transactions": body}
        return cls.model_validate(body)


class IndexerTransfer(_Camel):
    id: str
    local_token: str = Field(alias="localToken")
    remote_token: Optional[str] = Field(None, alias="remoteToken")
    to: str
    amount: str
    block_number: int = Field(alias="blockNumber")
    block_timestamp: int = Field(alias="blockTimestamp")
    transaction_hash: str = Field(alias="transactionHash")

    @field_validator("amount", mode="before")
    @classmethod
    def _amount_as_str(cls, v):
        return str(v)
