"""
Gas price policy.

A price setting is either a fixed gwei amount or "auto". Legacy
transactions use a single gasPrice; EIP-1559 transactions use
maxFeePerGas and maxPriorityFeePerGas, each fixed or auto.
"""

from dataclasses import dataclass
from typing import Callable

from property_oracle.core.errors import ChainReadError
from property_oracle.observability.logger import get_logger


logger = get_logger(__name__)

AUTO = "auto"
GWEI = 10**9
GAS_LIMIT_BUFFER_PERCENT = 20
FALLBACK_MAX_FEE_GWEI = 50
FALLBACK_PRIORITY_FEE_GWEI = 2

GasSetting = float | str


def gwei_to_wei(value: float) -> int:
    return int(round(float(value) * GWEI))


def with_gas_buffer(estimate: int) -> int:
    """Gas limit with a 20% buffer over the estimate."""
    return estimate * (100 + GAS_LIMIT_BUFFER_PERCENT) // 100


def parse_gas_setting(value: GasSetting | None) -> GasSetting | None:
    """
    Normalize a gas setting from config or the command line.

    Examples:
        >>> parse_gas_setting("AUTO")
        'auto'
        >>> parse_gas_setting("30")
        30.0
    """
    if value is None or value == "":
        return None
    if isinstance(value, str):
        if value.strip().lower() == AUTO:
            return AUTO
        try:
            value = float(value)
        except ValueError:
            raise ValueError(f"Gas price must be a number of gwei or 'auto', got {value!r}") from None
    if value <= 0:
        raise ValueError(f"Gas price must be positive, got {value}")
    return float(value)


@dataclass(frozen=True)
class GasPricePolicy:
    """
    How transaction fees are chosen.

    Attributes:
        gas_price: Legacy gas price in gwei, or "auto"
        max_fee: EIP-1559 maxFeePerGas in gwei, or "auto"
        max_priority_fee: EIP-1559 maxPriorityFeePerGas in gwei, or "auto"
    """

    gas_price: GasSetting = AUTO
    max_fee: GasSetting | None = None
    max_priority_fee: GasSetting | None = None

    @property
    def is_eip1559(self) -> bool:
        return self.max_fee is not None or self.max_priority_fee is not None or self.gas_price == AUTO

    def fee_fields(self, fee_data: Callable[[], tuple[int, int]] | None = None) -> dict[str, int]:
        """
        Fee fields for a transaction dict, in wei.

        Args:
            fee_data: Provider lookup returning (max_fee, max_priority_fee)

        Returns:
            {"gasPrice": ...} or {"maxFeePerGas": ..., "maxPriorityFeePerGas": ...}
        """
        if not self.is_eip1559:
            return {"gasPrice": gwei_to_wei(self.gas_price)}

        needs_provider = AUTO in (self.max_fee or AUTO, self.max_priority_fee or AUTO)
        suggested_max, suggested_priority = (
            gwei_to_wei(FALLBACK_MAX_FEE_GWEI),
            gwei_to_wei(FALLBACK_PRIORITY_FEE_GWEI),
        )
        if needs_provider and fee_data is not None:
            suggested_max, suggested_priority = fee_data()
        elif needs_provider:
            logger.warning(
                f"No fee data available, using fallback {FALLBACK_MAX_FEE_GWEI}/"
                f"{FALLBACK_PRIORITY_FEE_GWEI} gwei"
            )

        max_fee = suggested_max if self.max_fee in (None, AUTO) else gwei_to_wei(self.max_fee)
        priority = (
            suggested_priority if self.max_priority_fee in (None, AUTO) else gwei_to_wei(self.max_priority_fee)
        )
        return {"maxFeePerGas": max(max_fee, priority), "maxPriorityFeePerGas": priority}


@dataclass(frozen=True)
class GasPriceSnapshot:
    """Fee data reported by a node for its latest block, in wei."""

    block_number: int | None
    gas_price: int
    base_fee: int | None
    max_priority_fee: int | None

    @property
    def max_fee(self) -> int | None:
        # Same suggestion the transaction builder uses: two base fees plus the tip
        if self.base_fee is None or self.max_priority_fee is None:
            return None
        return 2 * self.base_fee + self.max_priority_fee


def wei_to_gwei(value: int) -> float:
    return value / GWEI


def read_gas_prices(eth) -> GasPriceSnapshot:
    """
    Read legacy and EIP-1559 fee data from a web3 ``eth`` module.

    Nodes without EIP-1559 support report no base fee; the priority fee is
    then left unset.

    Raises:
        ChainReadError: If the node cannot be queried
    """
    try:
        block = eth.get_block("latest")
        gas_price = eth.gas_price
        base_fee = block.get("baseFeePerGas")
        max_priority_fee = eth.max_priority_fee if base_fee is not None else None
    except Exception as e:
        raise ChainReadError("gas_price", e) from e

    return GasPriceSnapshot(
        block_number=block.get("number"),
        gas_price=gas_price,
        base_fee=base_fee,
        max_priority_fee=max_priority_fee,
    )
