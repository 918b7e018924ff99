from __future__ import annotations

from configparser import ConfigParser
from pathlib import Path

import yaml

_FALLBACK_MARKET: dict[str, dict[str, float]] = {
    "So11111111111111111111111111111111111111112": {"price": 150.0, "liquidity": 1_000_000},
    "4zMMC9srt5Ri5X14GAgXhaHii3GnPAEERYPJgZJDncDU": {"price": 1.0, "liquidity": 5_000_000},
    "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v": {"price": 1.0, "liquidity": 5_000_000},
    "mSoLzYCxHdYgdzU16g5QSh3i5K3z3KZK7ytfqcJm7So": {"price": 160.0, "liquidity": 100_000},
}


class AppConfig:
    def __init__(self, config_path: Path | None = None, market_path: Path | None = None) -> None:
        parser = ConfigParser()
        package_root = Path(__file__).resolve().parent.parent
        parser.read(config_path or package_root / "config.ini")
        if not parser.sections() and config_path is None:
            parser.read(Path("config.ini"))
        self._parser = parser
        self._market = self._load_market(market_path or package_root / "market.yaml")

    def db_path(self) -> str:
        return self._get_str("storage", "db_path", "data/workflows.db")

    def log_level(self) -> str:
        return self._get_str("logging", "level", "INFO").upper()

    def pricing_settings(self) -> dict[str, float]:
        return {
            "volatility": self._get_float("pricing", "volatility", 0.02),
            "fee_rate": self._get_float("pricing", "fee_rate", 0.003),
            "max_price_impact_pct": self._get_float("pricing", "max_price_impact_pct", 5.0),
            "default_slippage_bps": self._get_int("pricing", "default_slippage_bps", 50),
        }

    def simulator_settings(self) -> dict[str, object]:
        return {
            "failure_rate": self._get_float("simulator", "failure_rate", 0.05),
            "min_delay_seconds": self._get_float("simulator", "min_delay_seconds", 2.0),
            "max_delay_seconds": self._get_float("simulator", "max_delay_seconds", 4.0),
            "execution_variance": self._get_float("simulator", "execution_variance", 0.005),
            "auto_approve_without_signer": self._get_bool("simulator", "auto_approve_without_signer", True),
        }

    def jupiter_settings(self) -> dict[str, object]:
        return {
            "base_url": self._get_str("jupiter", "base_url", "https://quote-api.jup.ag/v6"),
            "timeout_seconds": self._get_float("jupiter", "timeout_seconds", 8.0),
            "cluster": self._get_str("jupiter", "cluster", "devnet"),
        }

    def market_table(self) -> dict[str, dict[str, float]]:
        return {mint: dict(entry) for mint, entry in self._market.items()}

    def _get_str(self, section: str, key: str, fallback: str) -> str:
        return self._parser.get(section, key, fallback=fallback)

    def _get_int(self, section: str, key: str, fallback: int) -> int:
        return self._parser.getint(section, key, fallback=fallback)

    def _get_float(self, section: str, key: str, fallback: float) -> float:
        return self._parser.getfloat(section, key, fallback=fallback)

    def _get_bool(self, section: str, key: str, fallback: bool) -> bool:
        return self._parser.getboolean(section, key, fallback=fallback)

    def _load_market(self, path: Path) -> dict[str, dict[str, float]]:
        if not path.exists():
            return dict(_FALLBACK_MARKET)
        try:
            raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        except yaml.YAMLError:
            return dict(_FALLBACK_MARKET)
        mints = raw.get("mints") if isinstance(raw, dict) else None
        if not isinstance(mints, dict):
            return dict(_FALLBACK_MARKET)

        market: dict[str, dict[str, float]] = {}
        for mint, entry in mints.items():
            if not isinstance(entry, dict):
                continue
            price = entry.get("price")
            liquidity = entry.get("liquidity")
            if isinstance(price, (int, float)) and isinstance(liquidity, (int, float)):
                market[str(mint)] = {"price": float(price), "liquidity": float(liquidity)}
        return market or dict(_FALLBACK_MARKET)


app_config = AppConfig()
