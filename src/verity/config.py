"""Configuration management for Verity.

Configuration is resolved once into a VerityConfig and passed explicitly to
the collaborators that need it. Nothing downstream reads the environment.
"""

import os
import tomllib
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

from verity.errors import ConfigError

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

DEFAULT_GATEWAYS = [
    "https://ipfs.io",
    "https://gateway.pinata.cloud",
    "https://cloudflare-ipfs.com",
]

# Ordered; anchoring results and ledger lookups follow this order
DEFAULT_NETWORKS: dict[str, dict] = {
    "scroll": {
        "display_name": "Scroll Sepolia",
        "chain_id": 534351,
        "explorer_url": "https://sepolia.scrollscan.com",
    },
    "arbitrum": {
        "display_name": "Arbitrum Sepolia",
        "chain_id": 421614,
        "explorer_url": "https://sepolia.arbiscan.io",
    },
}


def _find_repo_root(start_dir: Path) -> Path:
    """Find repository root by walking upward looking for .git or pyproject.toml."""
    current_dir = start_dir

    while True:
        if (current_dir / ".git").exists() or (current_dir / "pyproject.toml").exists():
            return current_dir

        parent_dir = current_dir.parent

        # Stop if we reach filesystem root
        if parent_dir == current_dir:
            return start_dir

        current_dir = parent_dir


def _load_repo_config_data(repo_root: Path) -> Optional[dict]:
    """Load repo config data from .verity/config.toml if it exists."""
    config_file = repo_root / ".verity" / "config.toml"

    if not config_file.exists():
        return None

    try:
        with open(config_file, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError):
        # If config file is malformed, ignore it
        return None


def _get_repo_config_value(data: Optional[dict], keys: list[str]):
    """Safely get a nested repo config value."""
    if not data:
        return None
    current = data
    for key in keys:
        if not isinstance(current, dict) or key not in current:
            return None
        current = current[key]
    return current


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _first(*values):
    for value in values:
        if value is not None and value != "":
            return value
    return None


def _number(cast, env_name: str, repo_value, default):
    """Read a numeric setting, naming the variable when it does not parse."""
    value = _first(os.environ.get(env_name), repo_value, default)
    try:
        return cast(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{env_name} must be a number, got {value!r}") from e


class ContentStoreConfig(BaseModel):
    """Pinata pinning API and IPFS gateway settings."""

    jwt: Optional[str] = Field(default=None, description="Pinata JWT (PINATA_JWT)")
    api_url: str = Field(default="https://api.pinata.cloud")
    gateways: list[str] = Field(default_factory=lambda: list(DEFAULT_GATEWAYS), min_length=1)
    max_gateway_attempts: int = Field(default=3)
    timeout_seconds: float = Field(default=60.0)


class LedgerNetworkConfig(BaseModel):
    """One EVM network carrying a deployed EvidenceRegistry contract."""

    name: str
    display_name: str
    rpc_url: Optional[str] = None
    contract_address: Optional[str] = None
    chain_id: Optional[int] = None
    explorer_url: Optional[str] = None


class LedgerConfig(BaseModel):
    """Settings shared by every ledger network."""

    private_key: Optional[str] = Field(default=None, description="Signing key (PRIVATE_KEY)")
    confirmations: int = Field(default=1)
    timeout_seconds: float = Field(default=180.0, description="Upper bound for one anchoring fan-out")
    receipt_timeout_seconds: float = Field(
        default=120.0, description="Per-ledger wait for a receipt and its confirmations"
    )
    rpc_timeout_seconds: float = Field(default=30.0)
    networks: list[LedgerNetworkConfig] = Field(default_factory=list)


class VerityConfig(BaseModel):
    """Configuration for the evidence pipeline."""

    data_dir: Path = Field(default_factory=lambda: Path("./db"))
    delete_temp_files: bool = Field(default=False)
    content_store: ContentStoreConfig = Field(default_factory=ContentStoreConfig)
    ledger: LedgerConfig = Field(default_factory=LedgerConfig)

    @property
    def records_file(self) -> Path:
        return self.data_dir / "records.json"

    @classmethod
    def from_env(cls, data_dir: Optional[str] = None) -> "VerityConfig":
        """Load configuration.

        Precedence per value: explicit argument, environment variable,
        repo-local .verity/config.toml, then defaults.
        """
        repo_config = _load_repo_config_data(_find_repo_root(Path.cwd())) or {}

        def repo(*keys: str):
            return _get_repo_config_value(repo_config, list(keys))

        gateways_env = os.environ.get("VERITY_IPFS_GATEWAYS")
        if gateways_env:
            gateways = [g.strip().rstrip("/") for g in gateways_env.split(",") if g.strip()]
        else:
            gateways = [g.rstrip("/") for g in (repo("content_store", "gateways") or [])]
        # resolve() needs a primary gateway
        if not gateways:
            gateways = list(DEFAULT_GATEWAYS)

        content_store = ContentStoreConfig(
            jwt=_first(os.environ.get("PINATA_JWT"), repo("content_store", "jwt")),
            api_url=_first(
                os.environ.get("VERITY_PINATA_API_URL"),
                repo("content_store", "api_url"),
                "https://api.pinata.cloud",
            ),
            gateways=gateways,
            max_gateway_attempts=_number(
                int,
                "VERITY_MAX_GATEWAY_ATTEMPTS",
                repo("content_store", "max_gateway_attempts"),
                len(gateways),
            ),
            timeout_seconds=_number(
                float,
                "VERITY_GATEWAY_TIMEOUT_SECONDS",
                repo("content_store", "timeout_seconds"),
                60,
            ),
        )

        ledger = LedgerConfig(
            private_key=_first(os.environ.get("PRIVATE_KEY"), repo("ledger", "private_key")),
            confirmations=_number(int, "NETWORK_CONFIRMATIONS", repo("ledger", "confirmations"), 1),
            timeout_seconds=_number(
                float,
                "VERITY_LEDGER_TIMEOUT_SECONDS",
                repo("ledger", "timeout_seconds"),
                180,
            ),
            receipt_timeout_seconds=_number(
                float,
                "VERITY_RECEIPT_TIMEOUT_SECONDS",
                repo("ledger", "receipt_timeout_seconds"),
                120,
            ),
            rpc_timeout_seconds=_number(
                float,
                "VERITY_RPC_TIMEOUT_SECONDS",
                repo("ledger", "rpc_timeout_seconds"),
                30,
            ),
            networks=_load_networks(repo("ledger", "networks") or {}),
        )

        repo_delete = repo("delete_temp_files")
        return cls(
            data_dir=Path(_first(data_dir, os.environ.get("VERITY_DATA_DIR"), repo("data_dir"), "./db")),
            delete_temp_files=_env_bool("DELETE_TEMP_FILES", bool(repo_delete)),
            content_store=content_store,
            ledger=ledger,
        )

    def warnings(self) -> list[str]:
        """Describe missing settings; none of them prevents startup."""
        problems = []
        if not self.content_store.jwt:
            problems.append("Missing: PINATA_JWT (uploads to IPFS will fail)")
        if not self.ledger.private_key:
            problems.append("Missing: PRIVATE_KEY (required for blockchain transactions)")
        for network in self.ledger.networks:
            prefix = network.name.upper()
            if not network.rpc_url:
                problems.append(f"Missing: {prefix}_RPC_URL")
            if not network.contract_address or network.contract_address == ZERO_ADDRESS:
                problems.append(f"Missing: {prefix}_CONTRACT_ADDRESS")
        return problems


def _to_int(value, name: str) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{name} must be a number, got {value!r}") from e


def _load_networks(repo_networks: dict) -> list[LedgerNetworkConfig]:
    """Build the ordered network list: built-in networks first, then TOML extras."""
    names = list(DEFAULT_NETWORKS)
    if isinstance(repo_networks, dict):
        names += [name for name in repo_networks if name not in DEFAULT_NETWORKS]

    networks = []
    for name in names:
        defaults = DEFAULT_NETWORKS.get(name, {})
        section = repo_networks.get(name) if isinstance(repo_networks, dict) else None
        if not isinstance(section, dict):
            section = {}
        prefix = name.upper()
        chain_id = _first(section.get("chain_id"), defaults.get("chain_id"))
        networks.append(
            LedgerNetworkConfig(
                name=name,
                display_name=_first(section.get("display_name"), defaults.get("display_name"), name),
                rpc_url=_first(os.environ.get(f"{prefix}_RPC_URL"), section.get("rpc_url")),
                contract_address=_first(
                    os.environ.get(f"{prefix}_CONTRACT_ADDRESS"),
                    section.get("contract_address"),
                ),
                chain_id=_to_int(chain_id, f"ledger.networks.{name}.chain_id"),
                explorer_url=_first(section.get("explorer_url"), defaults.get("explorer_url")),
            )
        )
    return networks
