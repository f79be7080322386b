import asyncio
from pathlib import Path

from flipindex.core.config import RunConfig, load_settings
from flipindex.orchestration import run_index
from flipindex.storage import DuckDBEntityStore
from flipindex.storage.queries import fetch_collections, fetch_holders, fetch_txs

EXAMPLES_ROOT = Path(__file__).parent
assert EXAMPLES_ROOT.name == "examples"

# Copy settings.example.json and fill in the deployed factory/trade addresses
SETTINGS = EXAMPLES_ROOT / "settings.json"
assert SETTINGS.is_file()

settings = load_settings(SETTINGS)
config = RunConfig.from_settings(settings, "base-sepolia")


async def main():
    result = await run_index(config, database_path=settings.database_path)
    print(result.stats)

    with DuckDBEntityStore(settings.database_path) as store:
        collections = fetch_collections(store, first=5)
        print(collections)
        if collections.empty:
            return

        top = collections["address"][0]
        print(fetch_holders(store, top, first=10))
        print(fetch_txs(store, collection=top, first=10)[["tx_type", "sender", "price", "token_ids"]])


asyncio.run(main())
