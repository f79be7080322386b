"""
sql_queries.py
--------------

SQL for the read model served from the DuckDB entity store.

uint256 columns are stored as decimal strings; ordering on them uses
`length(col), col`, which sorts non-negative decimals numerically without
casting (values may exceed HUGEINT).
"""

# =====================================================================
# ACTIVITY FEED (txs)
# =====================================================================

TXS_SELECT = """
SELECT
  id,
  collection_address,
  tx_type,
  sender,
  price,
  token_ids,
  block_number,
  block_timestamp,
  transaction_hash,
  log_index
FROM txs
"""

TXS_ORDER_PAGE = """
ORDER BY block_timestamp DESC, block_number DESC, log_index DESC
LIMIT ? OFFSET ?
"""

TXS_COUNT = "SELECT count(*) FROM txs"


# =====================================================================
# HOLDER LEADERBOARD (ownership_summary)
# =====================================================================

HOLDERS_QUERY = """
SELECT
  owner,
  nft_count,
  first_owned_at_block_timestamp,
  last_updated_at_block_timestamp
FROM ownership_summary
WHERE collection_address = ?
  AND nft_count > 0
ORDER BY nft_count DESC, first_owned_at_block_timestamp ASC, owner ASC
LIMIT ? OFFSET ?
"""


# =====================================================================
# CROSS-CHAIN STATUS
# =====================================================================

CROSS_CHAIN_STATUS_QUERY = """
SELECT
  contract_address,
  token_id,
  sender,
  receiver,
  destination,
  is_transferred,
  block_number,
  block_timestamp,
  transaction_hash
FROM cross_chain_status
WHERE contract_address = ?
  AND (sender = ? OR receiver = ?)
ORDER BY block_number DESC, length(token_id) ASC, token_id ASC
"""


# =====================================================================
# COLLECTION OVERVIEW (collection_info ⨝ collection_stats)
# =====================================================================

COLLECTIONS_QUERY = """
SELECT
  i.id                  AS address,
  i.name,
  i.symbol,
  i.creator,
  i.supports_cross_chain,
  s.current_supply,
  s.total_supply,
  s.owner_count,
  s.total_volume,
  s.floor_price,
  s.total_transactions
FROM collection_info AS i
LEFT JOIN collection_stats AS s ON s.id = i.id
ORDER BY length(coalesce(s.total_volume, '0')) DESC, coalesce(s.total_volume, '0') DESC, i.id ASC
LIMIT ? OFFSET ?
"""
