"""Backtest statistics — pure functions for trade-outcome analysis."""

from candlesignal.backtest.simulator import TradeOutcome, TradeResult


def calculate_stats(outcomes: list[TradeOutcome]) -> dict:
    """Compute summary statistics from a list of trade outcomes.

    ``INVALID`` outcomes count towards ``total_trades`` only; they are
    excluded from the win rate and the mean price change.

    Returns:
        Dict with ``total_trades``, ``wins``, ``losses``, ``invalid``,
        ``win_rate`` (percent, 2 dp), ``avg_price_change_pct`` (2 dp) and
        ``max_consecutive_losses``.
    """
    wins = sum(1 for o in outcomes if o.result is TradeResult.WIN)
    losses = sum(1 for o in outcomes if o.result is TradeResult.LOSS)
    decided = wins + losses

    win_rate = (wins / decided) * 100 if decided else 0.0

    changes = [o.price_change_pct for o in outcomes if o.result is not TradeResult.INVALID]
    avg_change = sum(changes) / len(changes) if changes else 0.0

    return {
        "total_trades": len(outcomes),
        "wins": wins,
        "losses": losses,
        "invalid": len(outcomes) - decided,
        "win_rate": round(win_rate, 2),
        "avg_price_change_pct": round(avg_change, 2),
        "max_consecutive_losses": max_consecutive_losses(outcomes),
    }


def max_consecutive_losses(outcomes: list[TradeOutcome]) -> int:
    """Longest run of consecutive losses.

    A win resets the run; an invalid outcome neither extends nor resets it.
    """
    longest = 0
    current = 0
    for o in outcomes:
        if o.result is TradeResult.WIN:
            current = 0
        elif o.result is TradeResult.LOSS:
            current += 1
            if current > longest:
                longest = current
    return longest
