"""Collection registry handlers (factory contract events)."""

from __future__ import annotations

import logging

from flipindex.core.errors import MissingConfigTarget
from flipindex.core.events import CollectionCreated, ConfigChanged, ConfigField
from flipindex.core.interfaces import IEntityStore
from flipindex.core.models import CollectionInfo, CollectionStats

logger = logging.getLogger(__name__)


def _info_from_event(event: CollectionCreated) -> CollectionInfo:
    cross = event.cross_chain
    return CollectionInfo(
        id=event.flip_address,
        name=event.name,
        symbol=event.symbol,
        creator=event.creator,
        creator_fee=event.creator_fee_percent,
        base_uri=event.base_uri,
        initial_price=event.initial_price,
        max_supply=event.max_supply,
        max_price=event.max_price,
        supports_mint=cross.support_mint if cross else True,
        supports_cross_chain=cross is not None,
        gas_limit=cross.gas_limit if cross else 0,
        price_contract_address=event.price_address,
        is_registered=True,
        created_at_block_timestamp=event.meta.block_timestamp,
        created_at_block_number=event.meta.block_number,
        gateway_address=cross.gateway_address if cross else None,
    )


def handle_collection_created(store: IEntityStore, event: CollectionCreated) -> None:
    """Create CollectionInfo if absent, then initialize CollectionStats if absent.

    Both steps are create-if-absent, so a duplicate delivery changes nothing.
    """
    address = event.flip_address
    if store.load(CollectionInfo, address) is None:
        store.save(_info_from_event(event))
        logger.info(
            "collection %s (%s) created by %s%s",
            address,
            event.symbol,
            event.creator,
            " [cross-chain]" if event.cross_chain else "",
        )
    else:
        logger.warning("collection %s already registered, keeping existing info", address)

    if store.load(CollectionStats, address) is None:
        store.save(
            CollectionStats(
                id=address,
                floor_price=event.initial_price,
                last_updated_at_block_timestamp=event.meta.block_timestamp,
            )
        )


def handle_config_changed(store: IEntityStore, event: ConfigChanged) -> None:
    """Set one configuration field on an existing collection; never creates one."""
    info = store.load(CollectionInfo, event.flip_address)
    if info is None:
        raise MissingConfigTarget(
            f"{event.field.value} change for unknown collection {event.flip_address}"
        )
    match event.field:
        case ConfigField.GAS_LIMIT:
            info.gas_limit = int(event.value)
        case ConfigField.GATEWAY:
            info.gateway_address = str(event.value)
        case ConfigField.UNIVERSAL:
            info.universal_address = str(event.value)
    store.save(info)
    logger.info("collection %s: %s set to %s", event.flip_address, event.field.value, event.value)
