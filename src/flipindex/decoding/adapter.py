"""ParsedEvent → typed `IndexedEvent` conversion.

Decoded field names are the snake_case projection keys produced by
`registry_builder`. Addresses arrive lowercased from the decoder.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from flipindex.core.errors import MalformedEvent
from flipindex.core.events import (
    Bought,
    BulkBuyExecuted,
    BulkMintExecuted,
    BulkQuickBuyExecuted,
    BulkSellExecuted,
    CollectionCreated,
    ConfigChanged,
    ConfigField,
    CrossChainSettings,
    IndexedEvent,
    Minted,
    QuickBuyExecuted,
    Sold,
    TransferCrossChain,
)
from flipindex.core.models import Meta
from flipindex.decoding.decoder import ParsedEvent

Builder = Callable[[Meta, dict[str, Any]], IndexedEvent]


def _created(meta: Meta, v: dict[str, Any]) -> CollectionCreated:
    cross_chain = None
    if "gateway_address" in v:
        cross_chain = CrossChainSettings(
            gateway_address=v["gateway_address"],
            gas_limit=v["gas_limit"],
            support_mint=v["support_mint"],
        )
    return CollectionCreated(
        meta=meta,
        creator=v["creator"],
        flip_address=v["flip_address"],
        price_address=v["price_address"],
        name=v["name"],
        symbol=v["symbol"],
        initial_price=v["initial_price"],
        max_supply=v["max_supply"],
        max_price=v["max_price"],
        creator_fee_percent=v["creator_fee_percent"],
        base_uri=v["base_uri"],
        cross_chain=cross_chain,
    )


def _config(field: ConfigField, key: str) -> Builder:
    def build(meta: Meta, v: dict[str, Any]) -> ConfigChanged:
        return ConfigChanged(meta=meta, flip_address=v["flip"], field=field, value=v[key])

    return build


def _token_trade(cls: type, counterparty: str) -> Builder:
    def build(meta: Meta, v: dict[str, Any]) -> IndexedEvent:
        return cls(
            meta=meta,
            flip_contract=v["flip_contract"],
            counterparty=v[counterparty],
            token_id=v["token_id"],
            price=v["price"],
        )

    return build


def _bulk_trade(cls: type, counterparty: str) -> Builder:
    def build(meta: Meta, v: dict[str, Any]) -> IndexedEvent:
        return cls(
            meta=meta,
            flip_contract=v["flip_contract"],
            counterparty=v[counterparty],
            token_ids=tuple(v["token_ids"]),
            total_price=v["total_price"],
        )

    return build


def _minted(meta: Meta, v: dict[str, Any]) -> Minted:
    return Minted(meta=meta, flip_contract=v["flip_contract"], to=v["to"], token_id=v["token_id"], price=v["price"])


def _transfer(meta: Meta, v: dict[str, Any]) -> TransferCrossChain:
    return TransferCrossChain(
        meta=meta,
        flip_contract=v["flip_contract"],
        sender=v["sender"],
        token_id=v["token_id"],
        receiver=v["receiver"],
        destination=v["destination"],
    )


BUILDERS: dict[str, Builder] = {
    "FLIPCreated": _created,
    "FLIPCrossChainCreated": _created,
    "SetGasLimit": _config(ConfigField.GAS_LIMIT, "gas_limit"),
    "SetGateway": _config(ConfigField.GATEWAY, "gateway"),
    "SetUniversal": _config(ConfigField.UNIVERSAL, "universal"),
    "Minted": _minted,
    "Bought": _token_trade(Bought, "buyer"),
    "Sold": _token_trade(Sold, "seller"),
    "QuickBuyExecuted": _token_trade(QuickBuyExecuted, "buyer"),
    "BulkBuyExecuted": _bulk_trade(BulkBuyExecuted, "buyer"),
    "BulkSellExecuted": _bulk_trade(BulkSellExecuted, "seller"),
    "BulkQuickBuyExecuted": _bulk_trade(BulkQuickBuyExecuted, "buyer"),
    "BulkMintExecuted": _bulk_trade(BulkMintExecuted, "buyer"),
    "TransferCrossChain": _transfer,
}


def to_indexed_event(parsed: ParsedEvent) -> IndexedEvent:
    """Build the typed event for a decoded log.

    Raises
    ------
    MalformedEvent
        Unknown event name, missing field, or payload invariant violation.
    """
    builder = BUILDERS.get(parsed.name)
    if builder is None:
        raise MalformedEvent(f"no typed event for {parsed.name}")
    try:
        return builder(parsed.meta, parsed.values)
    except KeyError as e:
        raise MalformedEvent(f"{parsed.name}: missing field {e.args[0]}") from e
