"""Event registries for the FLIP factory and trade contracts.

Both registries are built from the Solidity event signatures via
`registry_builder` and can be merged with `{**a, **b}` syntax.

Example
-------
>>> from flipindex.decoding.registries import make_factory_registry, make_trade_registry
>>> reg = {**make_factory_registry(), **make_trade_registry()}
"""

from __future__ import annotations

from .registry_builder import make_registry
from .specs import EventRegistry

_CREATED_PARAMS = (
    "address indexed creator, address indexed flipAddress, address priceAddress, "
    "string name, string symbol, uint256 initialPrice, uint256 maxSupply, "
    "uint256 maxPrice, uint256 creatorFeePercent, string baseUri"
)


# -------------------------
# Factory registry (collection creation + configuration)
# -------------------------


def make_factory_registry() -> EventRegistry:
    """Return registry for factory events (creation and cross-chain configuration)."""
    return make_registry([
        f"FLIPCreated({_CREATED_PARAMS})",
        f"FLIPCrossChainCreated({_CREATED_PARAMS}, address gatewayAddress, uint256 gasLimit, bool supportMint)",
        "SetGasLimit(address indexed flip, uint256 gasLimit)",
        "SetGateway(address indexed flip, address gateway)",
        "SetUniversal(address indexed flip, address universal)",
    ])


# -------------------------
# Trade registry (mint / buy / sell / bulk / cross-chain transfer)
# -------------------------


def make_trade_registry() -> EventRegistry:
    """Return registry for trade contract events."""
    return make_registry([
        "Minted(address indexed flipContract, address indexed to, uint256 indexed tokenId, uint256 price)",
        "Bought(address indexed flipContract, address indexed buyer, uint256 indexed tokenId, uint256 price)",
        "Sold(address indexed flipContract, address indexed seller, uint256 indexed tokenId, uint256 price)",
        "QuickBuyExecuted(address indexed flipContract, address indexed buyer, uint256 indexed tokenId, uint256 price)",
        "BulkBuyExecuted(address indexed flipContract, address indexed buyer, uint256[] tokenIds, uint256 totalPrice)",
        "BulkSellExecuted(address indexed flipContract, address indexed seller, uint256[] tokenIds, uint256 totalPrice)",
        "BulkQuickBuyExecuted(address indexed flipContract, address indexed buyer, uint256[] tokenIds, uint256 totalPrice)",
        "BulkMintExecuted(address indexed flipContract, address indexed buyer, uint256[] tokenIds, uint256 totalPrice)",
        "TransferCrossChain(address indexed flipContract, address indexed sender, uint256 indexed tokenId, address receiver, address destination)",
    ])


def make_flip_registry() -> EventRegistry:
    """Factory and trade registries merged."""
    return {**make_factory_registry(), **make_trade_registry()}
