from __future__ import annotations

from eth_utils import keccak

from flipindex.core.ids import cross_chain_status_id, event_id, nft_ownership_id, ownership_summary_id

COLLECTION = "0x" + "c0" * 20


def test_nft_ownership_id_is_keccak_of_address_and_token():
    expected = "0x" + keccak(text=f"{COLLECTION}-42").hex()
    assert nft_ownership_id(COLLECTION, 42) == expected
    assert len(expected) == 66


def test_ids_ignore_address_case():
    upper = "0x" + "C0" * 20
    assert nft_ownership_id(upper, 1) == nft_ownership_id(COLLECTION, 1)
    assert ownership_summary_id(upper, "0x" + "AB" * 20) == ownership_summary_id(COLLECTION, "0x" + "ab" * 20)


def test_ids_are_fixed_width_for_huge_token_ids():
    assert len(nft_ownership_id(COLLECTION, 2**256 - 1)) == len(nft_ownership_id(COLLECTION, 0))


def test_distinct_tokens_and_owners_get_distinct_ids():
    assert nft_ownership_id(COLLECTION, 1) != nft_ownership_id(COLLECTION, 2)
    assert ownership_summary_id(COLLECTION, "0x" + "aa" * 20) != ownership_summary_id(COLLECTION, "0x" + "bb" * 20)


def test_cross_chain_status_id_matches_token_key():
    assert cross_chain_status_id(COLLECTION, 7) == nft_ownership_id(COLLECTION, 7)


def test_event_id_distinguishes_logs_of_one_transaction():
    tx = "0x" + "AB" * 32
    assert event_id(tx, 0) == "0x" + "ab" * 32 + "-0"
    assert event_id(tx, 0) != event_id(tx, 1)
