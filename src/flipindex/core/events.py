"""Typed indexer events.

One frozen dataclass per on-chain event kind, each carrying its exact decoded
fields plus the log `Meta`. `IndexedEvent` is the closed union the dispatcher
matches on. Payload invariants are checked at construction and violations
raise `MalformedEvent`. Address fields are stored lowercased.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from flipindex.core.errors import MalformedEvent
from flipindex.core.models import Meta


def _require_non_negative(event: str, **values: int) -> None:
    for name, value in values.items():
        if value < 0:
            raise MalformedEvent(f"{event}: {name} must be >= 0, got {value}")


def _lowercase(event: object, *names: str) -> None:
    """Store the named address fields of a frozen event in lowercase."""
    for name in names:
        object.__setattr__(event, name, getattr(event, name).lower())


class ConfigField(str, Enum):
    """Collection settings that factory configuration events may change."""

    GAS_LIMIT = "gas_limit"
    GATEWAY = "gateway"
    UNIVERSAL = "universal"


# ---------------------------------------------------------------------------
# Factory events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CrossChainSettings:
    """Extra parameters of a cross-chain collection."""

    gateway_address: str
    gas_limit: int
    support_mint: bool

    def __post_init__(self) -> None:
        _lowercase(self, "gateway_address")


@dataclass(frozen=True, slots=True)
class CollectionCreated:
    meta: Meta
    creator: str
    flip_address: str
    price_address: str
    name: str
    symbol: str
    initial_price: int
    max_supply: int
    max_price: int
    creator_fee_percent: int
    base_uri: str
    cross_chain: CrossChainSettings | None = None

    def __post_init__(self) -> None:
        _require_non_negative(
            "CollectionCreated",
            initial_price=self.initial_price,
            max_supply=self.max_supply,
            max_price=self.max_price,
            creator_fee_percent=self.creator_fee_percent,
        )
        _lowercase(self, "creator", "flip_address", "price_address")

    @property
    def collection(self) -> str:
        return self.flip_address


@dataclass(frozen=True, slots=True)
class ConfigChanged:
    meta: Meta
    flip_address: str
    field: ConfigField
    value: str | int

    def __post_init__(self) -> None:
        if self.field is ConfigField.GAS_LIMIT:
            if not isinstance(self.value, int):
                raise MalformedEvent(f"ConfigChanged: gas limit must be an int, got {self.value!r}")
            _require_non_negative("ConfigChanged", gas_limit=self.value)
        elif not isinstance(self.value, str):
            raise MalformedEvent(f"ConfigChanged: {self.field.value} must be an address, got {self.value!r}")
        else:
            _lowercase(self, "value")
        _lowercase(self, "flip_address")

    @property
    def collection(self) -> str:
        return self.flip_address


# ---------------------------------------------------------------------------
# Trade events
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Minted:
    meta: Meta
    flip_contract: str
    to: str
    token_id: int
    price: int

    def __post_init__(self) -> None:
        _require_non_negative("Minted", token_id=self.token_id, price=self.price)
        _lowercase(self, "flip_contract", "to")

    @property
    def collection(self) -> str:
        return self.flip_contract


@dataclass(frozen=True, slots=True)
class TokenTrade:
    """Single-token trade; `counterparty` is the buyer or the seller."""

    meta: Meta
    flip_contract: str
    counterparty: str
    token_id: int
    price: int

    def __post_init__(self) -> None:
        _require_non_negative(type(self).__name__, token_id=self.token_id, price=self.price)
        _lowercase(self, "flip_contract", "counterparty")

    @property
    def collection(self) -> str:
        return self.flip_contract


@dataclass(frozen=True, slots=True)
class Bought(TokenTrade):
    pass


@dataclass(frozen=True, slots=True)
class Sold(TokenTrade):
    pass


@dataclass(frozen=True, slots=True)
class QuickBuyExecuted(TokenTrade):
    pass


@dataclass(frozen=True, slots=True)
class BulkTrade:
    """Multi-token operation with one aggregate price."""

    meta: Meta
    flip_contract: str
    counterparty: str
    token_ids: tuple[int, ...]
    total_price: int

    def __post_init__(self) -> None:
        name = type(self).__name__
        if not self.token_ids:
            raise MalformedEvent(f"{name}: empty token id list")
        if len(set(self.token_ids)) != len(self.token_ids):
            raise MalformedEvent(f"{name}: repeated token ids {list(self.token_ids)}")
        _require_non_negative(name, total_price=self.total_price, min_token_id=min(self.token_ids))
        _lowercase(self, "flip_contract", "counterparty")

    @property
    def collection(self) -> str:
        return self.flip_contract


@dataclass(frozen=True, slots=True)
class BulkBuyExecuted(BulkTrade):
    pass


@dataclass(frozen=True, slots=True)
class BulkSellExecuted(BulkTrade):
    pass


@dataclass(frozen=True, slots=True)
class BulkQuickBuyExecuted(BulkTrade):
    pass


@dataclass(frozen=True, slots=True)
class BulkMintExecuted(BulkTrade):
    pass


@dataclass(frozen=True, slots=True)
class TransferCrossChain:
    meta: Meta
    flip_contract: str
    sender: str
    token_id: int
    receiver: str
    destination: str

    def __post_init__(self) -> None:
        _require_non_negative("TransferCrossChain", token_id=self.token_id)
        _lowercase(self, "flip_contract", "sender", "receiver", "destination")

    @property
    def collection(self) -> str:
        return self.flip_contract


IndexedEvent = (
    CollectionCreated
    | ConfigChanged
    | Minted
    | Bought
    | Sold
    | QuickBuyExecuted
    | BulkBuyExecuted
    | BulkSellExecuted
    | BulkQuickBuyExecuted
    | BulkMintExecuted
    | TransferCrossChain
)
