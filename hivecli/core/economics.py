from __future__ import annotations

import time
from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Any

RC_REGEN_SECONDS = 5 * 24 * 3600
TRANSFER_SYMBOLS = frozenset({"HIVE", "HBD"})


def _asset_text(value: Any) -> str:
    # database_api returns NAI objects; condenser_api returns "1.000 HIVE".
    if isinstance(value, dict) and "amount" in value and "precision" in value:
        precision = int(value["precision"])
        amount = Decimal(int(value["amount"])).scaleb(-precision)
        return f"{amount:.{precision}f}"
    return str(value or "")


def parse_asset_amount(value: Any) -> Decimal:
    head = _asset_text(value).strip().split(" ")[0]
    if not head:
        return Decimal(0)
    try:
        return Decimal(head)
    except InvalidOperation as exc:
        raise ValueError(f"invalid asset amount: {value!r}") from exc


def validate_transfer_amount(amount: str) -> str:
    parts = str(amount or "").strip().split()
    if len(parts) != 2:
        raise ValueError('Amount must look like "1.000 HIVE" or "1.000 HBD"')
    number, symbol = parts[0], parts[1].upper()
    if symbol not in TRANSFER_SYMBOLS:
        raise ValueError(f"Unsupported asset symbol: {parts[1]} (expected HIVE or HBD)")
    try:
        value = Decimal(number)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid amount: {number}") from exc
    if value <= 0:
        raise ValueError("Amount must be positive")
    if value.as_tuple().exponent != -3:
        raise ValueError(f'Amount must have exactly 3 decimals, e.g. "{value:.3f} {symbol}"')
    return f"{number} {symbol}"


def parse_hp_amount(amount: str) -> Decimal:
    parts = str(amount or "").strip().split()
    if len(parts) != 2 or parts[1].upper() != "HP":
        raise ValueError('Amount must be in HP, e.g., "100 HP".')
    try:
        value = Decimal(parts[0])
    except InvalidOperation as exc:
        raise ValueError('Amount must be in HP, e.g., "100 HP".') from exc
    if not value.is_finite() or value < 0:
        raise ValueError('Amount must be in HP, e.g., "100 HP".')
    return value


def hp_to_vests(hp: Decimal, props: dict[str, Any]) -> str:
    """Convert HP to a ``VESTS`` asset string using global properties."""
    total_vesting_shares = parse_asset_amount(props.get("total_vesting_shares"))
    total_vesting_fund = parse_asset_amount(props.get("total_vesting_fund_hive"))
    if total_vesting_fund <= 0:
        raise ValueError("dynamic global properties missing total_vesting_fund_hive")
    vests = (hp * total_vesting_shares / total_vesting_fund).quantize(
        Decimal("0.000001"), rounding=ROUND_DOWN
    )
    return f"{vests:.6f} VESTS"


def vests_to_hp(vests: Any, props: dict[str, Any]) -> Decimal:
    total_vesting_shares = parse_asset_amount(props.get("total_vesting_shares"))
    total_vesting_fund = parse_asset_amount(props.get("total_vesting_fund_hive"))
    if total_vesting_shares <= 0:
        return Decimal(0)
    hp = parse_asset_amount(vests) * total_vesting_fund / total_vesting_shares
    return hp.quantize(Decimal("0.001"), rounding=ROUND_DOWN)


@dataclass(frozen=True, slots=True)
class RcSnapshot:
    max_rc: int
    current_stored: int
    last_update_time: int
    delegated_out: int = 0
    delegated_in: int = 0

    @classmethod
    def from_rc_account(cls, row: dict[str, Any]) -> RcSnapshot:
        manabar = row.get("rc_manabar") or {}
        return cls(
            max_rc=int(row.get("max_rc", 0)),
            current_stored=int(manabar.get("current_mana", 0)),
            last_update_time=int(manabar.get("last_update_time", 0)),
            delegated_out=int(row.get("delegated_rc", 0) or 0),
            delegated_in=int(row.get("received_delegated_rc", 0) or 0),
        )

    def current(self, now: float | None = None) -> int:
        elapsed = max(0, int(now if now is not None else time.time()) - self.last_update_time)
        regenerated = self.max_rc * elapsed // RC_REGEN_SECONDS
        return min(self.max_rc, self.current_stored + regenerated)

    def percent(self, now: float | None = None) -> float:
        if self.max_rc <= 0:
            return 0.0
        return (self.current(now) * 10000 // self.max_rc) / 100
