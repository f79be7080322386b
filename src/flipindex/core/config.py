"""Indexer configuration.

`IndexerSettings` / `NetworkConfig` are loaded from a JSON file and validated
eagerly: a blank URL or a malformed contract address fails at startup, not in
the middle of a run. `RunConfig` holds the parameters of one ingestion run.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

from eth_utils import is_address
from pydantic import BaseModel, Field, ValidationError, field_validator

from flipindex.core.errors import ConfigError


class NetworkConfig(BaseModel):
    """Contracts and RPC endpoint of one supported network."""

    name: str
    chain_id: int = Field(gt=0)
    rpc_url: str
    factory_address: str
    trade_address: str
    start_block: int = Field(default=0, ge=0)
    step: int = Field(default=2_000, gt=0)
    confirmations: int = Field(default=12, ge=0)
    timeout_s: int = Field(default=20, gt=0)

    @field_validator("name", "rpc_url")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("must not be blank")
        return value

    @field_validator("factory_address", "trade_address")
    @classmethod
    def _address(cls, value: str) -> str:
        value = value.strip()
        if not is_address(value):
            raise ValueError(f"not an address: {value!r}")
        return value.lower()

    @property
    def contract_addresses(self) -> list[str]:
        return [self.factory_address, self.trade_address]


class IndexerSettings(BaseModel):
    """Top-level settings file."""

    database_path: Path = Path("./data/flipindex.duckdb")
    manifests_dir: Path = Path("./data/manifests")
    max_store_attempts: int = Field(default=3, ge=1)
    store_retry_backoff_s: float = Field(default=0.5, ge=0)
    networks: list[NetworkConfig]

    @field_validator("networks")
    @classmethod
    def _unique_networks(cls, value: list[NetworkConfig]) -> list[NetworkConfig]:
        if not value:
            raise ValueError("at least one network is required")
        names = [n.name for n in value]
        if len(set(names)) != len(names):
            raise ValueError(f"duplicate network names: {names}")
        return value

    def network(self, name: str) -> NetworkConfig:
        for net in self.networks:
            if net.name == name:
                return net
        raise ConfigError(f"unknown network {name!r}; configured: {[n.name for n in self.networks]}")


def load_settings(path: Path) -> IndexerSettings:
    """Read and validate a JSON settings file."""
    try:
        raw = json.loads(path.read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"cannot read settings {path}: {e}") from e
    try:
        return IndexerSettings.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"invalid settings {path}:\n{e}") from e


@dataclass(frozen=True)
class RunConfig:
    """Configuration for one ingestion run over a network."""

    network: NetworkConfig
    end_block: int | str = "latest"
    manifests_dir: Path = Path("./data/manifests")
    max_store_attempts: int = 3
    store_retry_backoff_s: float = 0.5

    @classmethod
    def from_settings(
        cls,
        settings: IndexerSettings,
        network: str,
        *,
        end_block: int | str = "latest",
    ) -> RunConfig:
        return cls(
            network=settings.network(network),
            end_block=end_block,
            manifests_dir=settings.manifests_dir,
            max_store_attempts=settings.max_store_attempts,
            store_retry_backoff_s=settings.store_retry_backoff_s,
        )
