"""
Rate history tracking.

Appends every refreshed rate to a CSV file for audit and charting.
"""

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import pandas as pd

from cryptoflow.pricing.models import ResolvedRate

logger = logging.getLogger(__name__)

HISTORY_FILE = Path("data/history/rate_history.csv")

HISTORY_COLUMNS = [
    "recorded_at",
    "from_currency",
    "to_currency",
    "rate",
    "source",
    "degraded",
]


class RateHistoryStore:
    """
    CSV-backed history of resolved rates.

    Rates are written as fixed 8-decimal strings so the file round-trips
    without float drift.
    """

    def __init__(self, history_file: Optional[Path] = None):
        """
        Initialize the rate history store.

        Args:
            history_file: Path to the history CSV file.
        """
        self.history_file = Path(history_file) if history_file else HISTORY_FILE

    def _ensure_file_exists(self) -> None:
        """Create the history file if it doesn't exist."""
        self.history_file.parent.mkdir(parents=True, exist_ok=True)

        if not self.history_file.exists():
            pd.DataFrame(columns=HISTORY_COLUMNS).to_csv(self.history_file, index=False)
            logger.info(f"Created rate history file: {self.history_file}")

    def _read(self) -> pd.DataFrame:
        if not self.history_file.exists():
            return pd.DataFrame(columns=HISTORY_COLUMNS)
        return pd.read_csv(
            self.history_file,
            dtype={"from_currency": str, "to_currency": str, "rate": str, "source": str},
        )

    def record(self, rates: Iterable[ResolvedRate]) -> int:
        """
        Append a batch of resolved rates.

        Returns:
            Number of records written.
        """
        records = [
            {
                "recorded_at": rate.resolved_at.isoformat(),
                "from_currency": rate.pair.from_currency,
                "to_currency": rate.pair.to_currency,
                "rate": f"{rate.rate:.8f}",
                "source": rate.origin.value,
                "degraded": rate.is_degraded,
            }
            for rate in rates
        ]
        if not records:
            return 0

        self._ensure_file_exists()

        # Append without rewriting the existing file
        pd.DataFrame(records, columns=HISTORY_COLUMNS).to_csv(
            self.history_file, mode="a", header=False, index=False
        )

        logger.debug(f"Recorded {len(records)} rates to history")
        return len(records)

    def get_history(
        self,
        from_currency: Optional[str] = None,
        to_currency: Optional[str] = None,
        limit: int = 100,
    ) -> List[Dict[str, Any]]:
        """
        Get rate history, most recent first.

        Args:
            from_currency: Filter by source currency id.
            to_currency: Filter by destination currency id.
            limit: Maximum records to return.
        """
        df = self._read()
        if df.empty:
            return []

        if from_currency:
            df = df[df["from_currency"] == from_currency]
        if to_currency:
            df = df[df["to_currency"] == to_currency]

        df = df.sort_values("recorded_at", ascending=False, kind="stable").head(limit)

        records = []
        for row in df.to_dict(orient="records"):
            records.append({
                "fromCurrency": row["from_currency"],
                "toCurrency": row["to_currency"],
                "rate": row["rate"],
                "source": row["source"],
                "degraded": bool(row["degraded"]),
                "timestamp": row["recorded_at"],
            })
        return records

    def get_stats(self) -> Dict[str, Any]:
        """
        Summary statistics per pair.

        Returns:
            Dict with total_records and a pairs map of count/min/max/last.
        """
        df = self._read()
        if df.empty:
            return {"total_records": 0, "pairs": {}}

        df = df.assign(
            pair=df["from_currency"] + "-" + df["to_currency"],
            rate_value=pd.to_numeric(df["rate"], errors="coerce"),
        ).sort_values("recorded_at", kind="stable")

        pairs: Dict[str, Any] = {}
        for pair, group in df.groupby("pair"):
            pairs[pair] = {
                "count": int(len(group)),
                "min": float(group["rate_value"].min()),
                "max": float(group["rate_value"].max()),
                "last": group["rate"].iloc[-1],
            }

        return {"total_records": int(len(df)), "pairs": pairs}

    def clear_history(self) -> int:
        """
        Clear all history.

        Returns:
            Number of records cleared.
        """
        count = len(self._read())
        self.history_file.parent.mkdir(parents=True, exist_ok=True)
        pd.DataFrame(columns=HISTORY_COLUMNS).to_csv(self.history_file, index=False)
        logger.info(f"Cleared {count} rate history records")
        return count
