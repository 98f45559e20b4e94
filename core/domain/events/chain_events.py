"""
Decoded chain events delivered by the host indexing runtime.

Each supported log is modelled as its own pydantic type, discriminated by
`kind`. Validation happens once here; handlers receive events whose required
fields are guaranteed present.

Accepted raw shape (camelCase or snake_case keys):

    {
      "kind": "swap" | "purchase" | "listing_fee" | "fee_transfer",
      "address": "0x...",
      "blockNumber": 123, "blockTimestamp": 1700000000, "blockHash": "0x...",
      "transactionHash": "0x...", "logIndex": 0,
      "args": {...}
    }

uint256 values may be ints or decimal/hex strings.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Tuple, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    field_validator,
)

from core.domain.errors import MalformedEventError
from core.services.candle_key_service import CandleKeyService


def _parse_uint(v: Any) -> int:
    if isinstance(v, bool):
        raise ValueError("boolean is not a uint")
    if isinstance(v, int):
        out = v
    elif isinstance(v, str):
        s = v.strip()
        out = int(s, 16) if s.lower().startswith("0x") else int(s)
    else:
        raise ValueError(f"unsupported uint value: {v!r}")
    if out < 0:
        raise ValueError("uint must be non-negative")
    return out


def _parse_optional_uint(v: Any) -> Optional[int]:
    # Price inputs are lenient: an absent or unparseable value resolves to price 0.
    if v is None:
        return None
    try:
        return _parse_uint(v)
    except ValueError:
        return None


def _lower_address(v: Any) -> Optional[str]:
    if v is None:
        return None
    s = str(v).strip().lower()
    return s or None


UInt = Annotated[int, BeforeValidator(_parse_uint)]
LenientUInt = Annotated[Optional[int], BeforeValidator(_parse_optional_uint)]
Address = Annotated[str, BeforeValidator(_lower_address)]
OptionalAddress = Annotated[Optional[str], BeforeValidator(_lower_address)]


class _Args(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class SwapArgs(_Args):
    sender: OptionalAddress = None
    collateral_token: OptionalAddress = Field(default=None, alias="collateralToken")
    collateral_amount: UInt = Field(alias="collateralAmount")
    lmkt_amount: UInt = Field(alias="lmktAmount")
    total_collateral: LenientUInt = Field(default=None, alias="totalCollateral")
    circulating_supply: LenientUInt = Field(default=None, alias="circulatingSupply")
    is_buy: Optional[bool] = Field(default=None, alias="isBuy")


class PurchaseArgs(_Args):
    listing_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("listingId", "listing_id"))
    buyer: OptionalAddress = None
    seller: OptionalAddress = None
    lmkt_amount: UInt = Field(validation_alias=AliasChoices("lmktAmount", "lmkt_amount", "totalAmount"))

    @field_validator("listing_id", mode="before")
    @classmethod
    def _listing_id_str(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)


class ListingFeeArgs(_Args):
    listing_id: Optional[str] = Field(default=None, validation_alias=AliasChoices("listingId", "listing_id"))
    payer: OptionalAddress = Field(default=None, validation_alias=AliasChoices("payer", "vendor", "owner"))
    fee_token: OptionalAddress = Field(default=None, validation_alias=AliasChoices("feeToken", "fee_token"))
    fee_paid: UInt = Field(validation_alias=AliasChoices("feePaid", "fee_paid"))

    @field_validator("listing_id", mode="before")
    @classmethod
    def _listing_id_str(cls, v: Any) -> Optional[str]:
        return None if v is None else str(v)


class FeeTransferArgs(_Args):
    from_address: OptionalAddress = Field(default=None, validation_alias=AliasChoices("from", "from_address"))
    to_address: Address = Field(validation_alias=AliasChoices("to", "to_address"))
    value: UInt


class _ChainEventBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    address: Address
    block_number: int = Field(alias="blockNumber", ge=0)
    block_timestamp: int = Field(alias="blockTimestamp", ge=0)
    block_hash: Optional[str] = Field(default=None, alias="blockHash")
    transaction_hash: str = Field(alias="transactionHash", min_length=1)
    log_index: int = Field(alias="logIndex", ge=0)

    @property
    def event_key(self) -> str:
        return CandleKeyService.event_key(transaction_hash=self.transaction_hash, log_index=self.log_index)

    @property
    def cursor(self) -> Tuple[int, int]:
        return (int(self.block_number), int(self.log_index))

    @property
    def block_tag(self) -> int:
        return int(self.block_number)


class SwapEvent(_ChainEventBase):
    """MKTSwap emitted by the treasury; carries its own price inputs."""

    kind: Literal["swap"] = "swap"
    args: SwapArgs


class PurchaseEvent(_ChainEventBase):
    """PurchaseMade emitted by the payment processor."""

    kind: Literal["purchase"] = "purchase"
    args: PurchaseArgs


class ListingFeeEvent(_ChainEventBase):
    """ListingCreated / ListingRenewed emitted by the listing manager."""

    kind: Literal["listing_fee"] = "listing_fee"
    action: Literal["created", "renewed"] = "created"
    args: ListingFeeArgs


class FeeTransferEvent(_ChainEventBase):
    """ERC-20 Transfer; `address` is the transferred token."""

    kind: Literal["fee_transfer"] = "fee_transfer"
    args: FeeTransferArgs


ChainEvent = Annotated[
    Union[SwapEvent, PurchaseEvent, ListingFeeEvent, FeeTransferEvent],
    Field(discriminator="kind"),
]

_adapter: TypeAdapter[ChainEvent] = TypeAdapter(ChainEvent)


def _raw_event_key(raw: Any) -> Optional[str]:
    if not isinstance(raw, dict):
        return None
    tx = raw.get("transactionHash") or raw.get("transaction_hash")
    idx = raw.get("logIndex", raw.get("log_index"))
    if tx is None or idx is None:
        return None
    return f"{str(tx).lower()}:{idx}"


def parse_chain_event(raw: Any) -> ChainEvent:
    """
    Validate a raw decoded event record into its typed form.

    Raises:
        MalformedEventError: when args are missing or any required field is invalid.
    """
    key = _raw_event_key(raw)
    if not isinstance(raw, dict):
        raise MalformedEventError("event record must be an object", event_key=key)
    if raw.get("args") is None:
        raise MalformedEventError("event has no args", event_key=key)

    try:
        return _adapter.validate_python(raw)
    except ValidationError as exc:
        raise MalformedEventError(f"invalid {raw.get('kind')!r} event: {exc}", event_key=key) from exc
