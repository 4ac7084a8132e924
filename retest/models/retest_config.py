"""Strategy configuration dataclass.

Holds the parameters of the opening retest strategy for one symbol.
"""

from dataclasses import dataclass


def _check_range(name: str, value: float, low: float, high: float) -> None:
    if not low <= value <= high:
        raise ValueError(f"{name} must be between {low} and {high}, got {value}")


@dataclass(frozen=True)
class RetestConfig:
    """Parameters for a single opening retest strategy.

    ``take_profit``, ``stop_loss`` and both movement thresholds are in
    account currency per share (1 = 1 unit of price movement).  Hours are
    compared against the hour of the bar open time.  ``price_precision`` is
    the number of decimals the broker accepts for SL/TP prices on ``symbol``.
    """

    symbol: str = "SPX500_USD"
    label: str = "Opening Retest"
    shares: int = 500
    take_profit: float = 3.0
    stop_loss: float = 3.0
    no_entry_after_hour: int = 19
    close_all_trades_hour: int = 19
    use_max_move_from_open: bool = False
    max_move_from_open: float = 1.0
    use_max_move_high_to_low: bool = False
    max_move_high_to_low: float = 1.0
    reset_movement_daily: bool = True
    price_precision: int = 1

    def __post_init__(self) -> None:
        if self.shares < 1:
            raise ValueError(f"shares must be at least 1, got {self.shares}")
        if self.shares != int(self.shares):
            raise ValueError(f"shares must be a whole number, got {self.shares}")
        _check_range("take_profit", self.take_profit, 0.1, 10)
        _check_range("stop_loss", self.stop_loss, 0.1, 10)
        _check_range("no_entry_after_hour", self.no_entry_after_hour, 1, 25)
        _check_range("close_all_trades_hour", self.close_all_trades_hour, 1, 25)
        _check_range("max_move_from_open", self.max_move_from_open, 0.1, 10)
        _check_range("max_move_high_to_low", self.max_move_high_to_low, 0.1, 10)
        _check_range("price_precision", self.price_precision, 0, 6)
