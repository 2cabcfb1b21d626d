"""Read paths that present live statistics for events and decks.

Every view loads the raw rounds in scope and recomputes statistics from them.
The counters stored on each event are only compared against the recomputed
match counts so drift can be logged. Each view does its reads inside the
store's `snapshot()`, so it never sees a write that is still in flight.
"""

import asyncio
from typing import Optional

from engine.outcomes import tally_rounds
from engine.rates import compute_stats
from errors import ConsistencyDrift
from models import (
    Deck, DeckSummary, Event, EventDetail, EventSummary, MatchStats, RoundSummary,
)
from utils.console import Colors, log


def stored_badge(event: Event) -> str:
    """W-L-D badge from the stored counters, for display before rounds load."""
    return f"{event.wins}-{event.losses}-{event.draws}"


def check_drift(event: Event, stats: MatchStats) -> Optional[ConsistencyDrift]:
    """Compare stored counters with recomputed match counts. Logs any drift."""
    stored = (event.wins, event.losses, event.draws)
    recomputed = (stats.matches_won, stats.matches_lost, stats.matches_drawn)
    if stored == recomputed:
        return None

    drift = ConsistencyDrift(event_id=event.id, stored=stored, recomputed=recomputed)
    log("STATS", f"Consistency drift: {drift}", Colors.YELLOW)
    return drift


def _deck_name(event: Event, decks_by_id: dict[int, Deck]) -> str:
    if event.user_deck_id is not None:
        deck = decks_by_id.get(event.user_deck_id)
        if deck:
            return deck.name
        return event.user_deck_name or "Unknown Deck"
    return event.user_deck_name or "No Deck Selected"


def _legacy_owners(decks: list[Deck]) -> dict[str, int]:
    """Deck name -> id of the oldest deck with that name."""
    owners = {}
    for deck in sorted(decks, key=lambda d: (d.created_at, d.id)):
        owners.setdefault(deck.name, deck.id)
    return owners


def _events_for_deck(deck: Deck, events: list[Event], legacy_owners: dict[str, int]) -> list[Event]:
    """Events played with a deck.

    Events saved before decks had ids only carry the deck name. Those match
    by name, and only the oldest deck of that name claims them.
    """
    return [
        event for event in events
        if event.user_deck_id == deck.id
        or (event.user_deck_id is None and legacy_owners.get(event.user_deck_name) == deck.id)
    ]


async def event_detail(store, owner_id: str, event_id: int) -> EventDetail:
    """Single event with its rounds and statistics."""
    log("STATS", f"event_detail({owner_id}, {event_id})", Colors.CYAN)
    async with store.snapshot():
        event = await store.fetch_event_meta(owner_id, event_id)
        rounds = await store.fetch_rounds(owner_id, event_id)
        deck = None
        if event.user_deck_id is not None:
            deck = await store.get_deck(owner_id, event.user_deck_id)

    deck_name = _deck_name(event, {deck.id: deck} if deck else {})
    stats = compute_stats(rounds)
    return EventDetail(
        event=event,
        deck_name=deck_name,
        rounds=[
            RoundSummary(round=r, tally=tally)
            for r, tally in zip(rounds, tally_rounds(rounds))
        ],
        stats=stats,
        drift=check_drift(event, stats),
    )


async def event_list(
    store,
    owner_id: str,
    event_type: Optional[str] = None,
) -> list[EventSummary]:
    """All of an owner's events, newest first, each with statistics."""
    log("STATS", f"event_list({owner_id}, type={event_type})", Colors.CYAN)
    async with store.snapshot():
        events = await store.list_events(owner_id, event_type)
        decks_by_id = {deck.id: deck for deck in await store.list_decks(owner_id)}
        round_sets = await asyncio.gather(
            *(store.fetch_rounds(owner_id, event.id) for event in events)
        )

    summaries = []
    for event, rounds in zip(events, round_sets):
        stats = compute_stats(rounds)
        summaries.append(EventSummary(
            event=event,
            deck_name=_deck_name(event, decks_by_id),
            stats=stats,
            drift=check_drift(event, stats),
        ))
    log("STATS", f"  {len(summaries)} event(s)", Colors.CYAN)
    return summaries


async def deck_list(store, owner_id: str) -> list[DeckSummary]:
    """All of an owner's decks with statistics over every round they played."""
    log("STATS", f"deck_list({owner_id})", Colors.CYAN)
    async with store.snapshot():
        decks = await store.list_decks(owner_id)
        events = await store.list_events(owner_id)
        round_sets = await asyncio.gather(
            *(store.fetch_rounds(owner_id, event.id) for event in events)
        )
    rounds_by_event = dict(zip((event.id for event in events), round_sets))
    legacy_owners = _legacy_owners(decks)

    summaries = []
    for deck in decks:
        deck_events = _events_for_deck(deck, events, legacy_owners)
        rounds = [r for event in deck_events for r in rounds_by_event[event.id]]
        summaries.append(DeckSummary(
            deck=deck,
            event_count=len(deck_events),
            stats=compute_stats(rounds),
            event_ids=[event.id for event in deck_events],
        ))
    log("STATS", f"  {len(summaries)} deck(s)", Colors.CYAN)
    return summaries
