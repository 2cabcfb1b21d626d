"""Match statistics engine for Lorcana Match Tracker Bot."""

from engine.outcomes import derive_outcome, tally_rounds
from engine.rates import MatchTotals, compute_stats, percentage
from engine.reconciler import (
    RoundReconciler,
    delta_for_add,
    delta_for_delete,
    delta_for_edit,
    delta_for_outcome,
)
from engine.aggregation import (
    check_drift,
    deck_list,
    event_detail,
    event_list,
    stored_badge,
)

__all__ = [
    "derive_outcome",
    "tally_rounds",
    "MatchTotals",
    "compute_stats",
    "percentage",
    "RoundReconciler",
    "delta_for_add",
    "delta_for_delete",
    "delta_for_edit",
    "delta_for_outcome",
    "check_drift",
    "deck_list",
    "event_detail",
    "event_list",
    "stored_badge",
]
