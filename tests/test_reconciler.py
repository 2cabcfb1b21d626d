"""Counter deltas and round mutations that keep event counters in step."""

import asyncio
import random
from dataclasses import replace
from datetime import date

import aiosqlite
import pytest
import pytest_asyncio

from database import Database
from engine import (
    RoundReconciler,
    compute_stats,
    delta_for_add,
    delta_for_delete,
    delta_for_edit,
)
from errors import EmptyRoundSubmission, InvalidResult, NotFound, PersistenceError, RoundTooLong
from models import CounterDelta
from factories import ALL_GAMES, OTHER_OWNER, OWNER, all_sequences, games, make_round, round_of


def counters(event) -> tuple:
    return (event.wins, event.losses, event.draws)


def match_counts(stats) -> tuple:
    return (stats.matches_won, stats.matches_lost, stats.matches_drawn)


def apply(start: tuple, delta: CounterDelta) -> tuple:
    return (start[0] + delta.wins, start[1] + delta.losses, start[2] + delta.draws)


class TestPureDeltas:

    def test_add(self):
        assert delta_for_add(games("WP WD LP")) == CounterDelta(wins=1)
        assert delta_for_add(games("LP")) == CounterDelta(losses=1)
        assert delta_for_add(games("WP LD")) == CounterDelta(draws=1)

    def test_delete(self):
        assert delta_for_delete(games("WP")) == CounterDelta(wins=-1)

    def test_edit_win_to_loss(self):
        assert delta_for_edit(games("WP WD"), games("LP LD DP")) == CounterDelta(wins=-1, losses=1)

    def test_edit_keeping_outcome_is_zero(self):
        assert delta_for_edit(games("WP WD"), games("WP LD WD")).is_zero

    def test_empty_round_counts_as_draw(self):
        assert delta_for_add([]) == CounterDelta(draws=1)

    def test_edit_delta_law(self):
        """Counters correct before an edit are correct after applying its delta."""
        others = [make_round("WP WD"), make_round("LP LD WP"), make_round("DP")]
        sequences = list(all_sequences(2))
        for old in sequences:
            before = match_counts(compute_stats(others + [round_of(old)]))
            for new in sequences:
                after = match_counts(compute_stats(others + [round_of(new)]))
                delta = delta_for_edit(old, new)
                assert apply(before, delta) == after
                assert {abs(delta.wins), abs(delta.losses), abs(delta.draws)} <= {0, 1}

    def test_add_then_delete_is_zero(self):
        for sequence in all_sequences(3):
            assert (delta_for_add(sequence) + delta_for_delete(sequence)).is_zero


class TestAddRound:

    @pytest.mark.asyncio
    async def test_increments_matching_counter(self, db, reconciler, tournament):
        round_id = await reconciler.add_round(OWNER, tournament.id, games("WP WD LP"), ["Ruby"])

        event = await db.fetch_event_meta(OWNER, tournament.id)
        assert counters(event) == (1, 0, 0)
        rounds = await db.fetch_rounds(OWNER, tournament.id)
        assert [r.id for r in rounds] == [round_id]
        assert rounds[0].games == games("WP WD LP")
        assert rounds[0].opponent_ink_colors == ("Ruby",)

    @pytest.mark.asyncio
    async def test_counts_rounds_not_games(self, db, reconciler, tournament):
        await reconciler.add_round(OWNER, tournament.id, games("WP WD LP"), ["Ruby"])
        await reconciler.add_round(OWNER, tournament.id, games("LP LD"), ["Steel"])
        await reconciler.add_round(OWNER, tournament.id, games("WP LD DP"), ["Amber"])

        event = await db.fetch_event_meta(OWNER, tournament.id)
        assert counters(event) == (1, 1, 1)

    @pytest.mark.asyncio
    async def test_rejects_empty_round(self, db, reconciler, tournament):
        with pytest.raises(EmptyRoundSubmission):
            await reconciler.add_round(OWNER, tournament.id, [], ["Ruby"])

        assert await db.fetch_rounds(OWNER, tournament.id) == []
        assert counters(await db.fetch_event_meta(OWNER, tournament.id)) == (0, 0, 0)

    @pytest.mark.asyncio
    async def test_rejects_unknown_result(self, db, reconciler, tournament):
        with pytest.raises(InvalidResult):
            await reconciler.add_round(
                OWNER, tournament.id, [{"result": "scoop", "onThePlay": True}], ["Ruby"]
            )
        assert await db.fetch_rounds(OWNER, tournament.id) == []

    @pytest.mark.asyncio
    async def test_tournament_rounds_are_best_of_three(self, db, reconciler, tournament):
        with pytest.raises(RoundTooLong):
            await reconciler.add_round(OWNER, tournament.id, games("WP LD WP LD"), ["Ruby"])

        assert await db.fetch_rounds(OWNER, tournament.id) == []
        assert counters(await db.fetch_event_meta(OWNER, tournament.id)) == (0, 0, 0)

    @pytest.mark.asyncio
    async def test_playtest_rounds_have_no_cap(self, db, reconciler, playtest):
        await reconciler.add_round(OWNER, playtest.id, games("WP LD WP LD WP"), ["Ruby"])
        assert counters(await db.fetch_event_meta(OWNER, playtest.id)) == (1, 0, 0)

    @pytest.mark.asyncio
    async def test_other_owners_event_is_not_found(self, db, reconciler, tournament):
        with pytest.raises(NotFound):
            await reconciler.add_round(OTHER_OWNER, tournament.id, games("WP"), ["Ruby"])

        assert await db.fetch_rounds(OWNER, tournament.id) == []
        assert counters(await db.fetch_event_meta(OWNER, tournament.id)) == (0, 0, 0)


class TestEditRound:

    @pytest.mark.asyncio
    async def test_win_to_loss(self, db, reconciler, tournament):
        await reconciler.add_round(OWNER, tournament.id, games("WP WD"), ["Ruby"])
        assert counters(await db.fetch_event_meta(OWNER, tournament.id)) == (1, 0, 0)

        previous = (await db.fetch_rounds(OWNER, tournament.id))[0]
        delta = await reconciler.edit_round(
            OWNER, tournament.id, previous, games("LP LD DP"), ["Ruby", "Sapphire"]
        )

        assert delta == CounterDelta(wins=-1, losses=1)
        assert counters(await db.fetch_event_meta(OWNER, tournament.id)) == (0, 1, 0)
        edited = await db.fetch_round(OWNER, tournament.id, previous.id)
        assert edited.games == games("LP LD DP")
        assert edited.opponent_ink_colors == ("Ruby", "Sapphire")

    @pytest.mark.asyncio
    async def test_same_outcome_leaves_counters(self, db, reconciler, tournament):
        await reconciler.add_round(OWNER, tournament.id, games("WP WD"), ["Ruby"])
        previous = (await db.fetch_rounds(OWNER, tournament.id))[0]

        delta = await reconciler.edit_round(OWNER, tournament.id, previous, games("WP LD WD"), ["Ruby"])

        assert delta.is_zero
        assert counters(await db.fetch_event_meta(OWNER, tournament.id)) == (1, 0, 0)

    @pytest.mark.asyncio
    async def test_delta_taken_against_round_loaded_at_open(self, db, reconciler, playtest):
        """The edit trusts the round it was opened with, without re-reading it."""
        await reconciler.add_round(OWNER, playtest.id, games("LP"), ["Ruby"])
        previous = (await db.fetch_rounds(OWNER, playtest.id))[0]

        fetched = []
        original = db.fetch_round

        async def spy(*args, **kwargs):
            fetched.append(args)
            return await original(*args, **kwargs)

        db.fetch_round = spy
        await reconciler.edit_round(OWNER, playtest.id, previous, games("WD"), ["Ruby"])

        assert fetched == []
        assert counters(await db.fetch_event_meta(OWNER, playtest.id)) == (1, 0, 0)

    @pytest.mark.asyncio
    async def test_rejects_empty_edit(self, db, reconciler, tournament):
        await reconciler.add_round(OWNER, tournament.id, games("WP"), ["Ruby"])
        previous = (await db.fetch_rounds(OWNER, tournament.id))[0]

        with pytest.raises(EmptyRoundSubmission):
            await reconciler.edit_round(OWNER, tournament.id, previous, [], ["Ruby"])

        assert (await db.fetch_round(OWNER, tournament.id, previous.id)).games == games("WP")

    @pytest.mark.asyncio
    async def test_missing_round_rolls_back(self, db, reconciler, tournament):
        await reconciler.add_round(OWNER, tournament.id, games("WP"), ["Ruby"])
        ghost = replace(round_of(games("WP"), event_id=tournament.id), id=9999)

        with pytest.raises(NotFound):
            await reconciler.edit_round(OWNER, tournament.id, ghost, games("LP"), ["Ruby"])

        assert counters(await db.fetch_event_meta(OWNER, tournament.id)) == (1, 0, 0)


class TestDeleteRound:

    @pytest.mark.asyncio
    async def test_decrements_and_removes(self, db, reconciler, tournament):
        await reconciler.add_round(OWNER, tournament.id, games("LP LD"), ["Ruby"])
        round = (await db.fetch_rounds(OWNER, tournament.id))[0]

        delta = await reconciler.delete_round(OWNER, tournament.id, round)

        assert delta == CounterDelta(losses=-1)
        assert await db.fetch_rounds(OWNER, tournament.id) == []
        assert counters(await db.fetch_event_meta(OWNER, tournament.id)) == (0, 0, 0)

    @pytest.mark.asyncio
    async def test_add_then_delete_restores_counters(self, db, reconciler, tournament):
        await reconciler.add_round(OWNER, tournament.id, games("WP WD"), ["Ruby"])
        await reconciler.add_round(OWNER, tournament.id, games("LP WD LD"), ["Steel"])
        before = counters(await db.fetch_event_meta(OWNER, tournament.id))

        round_id = await reconciler.add_round(OWNER, tournament.id, games("DP WD LP"), ["Amber"])
        added = await db.fetch_round(OWNER, tournament.id, round_id)
        await reconciler.delete_round(OWNER, tournament.id, added)

        assert counters(await db.fetch_event_meta(OWNER, tournament.id)) == before


class FailingCounterDatabase(Database):
    """Fails every counter update, after the round write has gone through."""

    async def apply_counter_delta(self, owner_id, event_id, delta):
        raise aiosqlite.OperationalError("database is locked")


@pytest_asyncio.fixture
async def failing_db():
    database = FailingCounterDatabase(":memory:")
    await database.connect()
    yield database
    await database.close()


class TestAtomicity:

    @pytest.mark.asyncio
    async def test_counter_failure_rolls_back_new_round(self, failing_db):
        event = await failing_db.create_event(OWNER, "Locals", "Playtest", date(2024, 6, 1), "Core")

        with pytest.raises(PersistenceError):
            await RoundReconciler(failing_db).add_round(OWNER, event.id, games("WP"), ["Ruby"])

        assert await failing_db.fetch_rounds(OWNER, event.id) == []
        assert counters(await failing_db.fetch_event_meta(OWNER, event.id)) == (0, 0, 0)

    @pytest.mark.asyncio
    async def test_counter_failure_keeps_deleted_round(self, failing_db):
        event = await failing_db.create_event(OWNER, "Locals", "Playtest", date(2024, 6, 1), "Core")
        round_id = await failing_db.create_round(OWNER, event.id, games("WP"), ["Ruby"])
        round = await failing_db.fetch_round(OWNER, event.id, round_id)

        with pytest.raises(PersistenceError):
            await RoundReconciler(failing_db).delete_round(OWNER, event.id, round)

        assert [r.id for r in await failing_db.fetch_rounds(OWNER, event.id)] == [round_id]

    @pytest.mark.asyncio
    async def test_counters_track_rounds_through_random_mutations(self, db, reconciler, playtest):
        rng = random.Random(42)
        for _ in range(60):
            rounds = await db.fetch_rounds(OWNER, playtest.id)
            new_games = [rng.choice(ALL_GAMES) for _ in range(rng.randint(1, 5))]
            action = rng.choice(["add", "edit", "delete"]) if rounds else "add"

            if action == "add":
                await reconciler.add_round(OWNER, playtest.id, new_games, ["Emerald"])
            elif action == "edit":
                await reconciler.edit_round(OWNER, playtest.id, rng.choice(rounds), new_games, ["Emerald"])
            else:
                await reconciler.delete_round(OWNER, playtest.id, rng.choice(rounds))

            event = await db.fetch_event_meta(OWNER, playtest.id)
            stats = compute_stats(await db.fetch_rounds(OWNER, playtest.id))
            assert counters(event) == match_counts(stats)


class FailOnceCounterDatabase(Database):
    """Fails the first counter update it sees, then behaves normally."""

    failures_left = 1

    async def apply_counter_delta(self, owner_id, event_id, delta):
        if self.failures_left:
            self.failures_left -= 1
            raise aiosqlite.OperationalError("database is locked")
        await super().apply_counter_delta(owner_id, event_id, delta)


async def seed_rounds(db, reconciler, event_id):
    for text in ("WP WD", "LP LD", "DP", "WP LD LP"):
        await reconciler.add_round(OWNER, event_id, games(text), ["Sapphire"])
    return await db.fetch_rounds(OWNER, event_id)


class TestConcurrentMutations:

    @pytest.mark.asyncio
    async def test_interleaved_writes_keep_counters_exact(self, db, reconciler, playtest):
        rounds = await seed_rounds(db, reconciler, playtest.id)

        await asyncio.gather(
            reconciler.edit_round(OWNER, playtest.id, rounds[0], games("LP"), ["Ruby"]),
            reconciler.edit_round(OWNER, playtest.id, rounds[1], games("WD WP"), ["Ruby"]),
            reconciler.delete_round(OWNER, playtest.id, rounds[2]),
            reconciler.add_round(OWNER, playtest.id, games("DD WP"), ["Ruby"]),
        )

        event = await db.fetch_event_meta(OWNER, playtest.id)
        current = await db.fetch_rounds(OWNER, playtest.id)
        assert len(current) == 4
        assert counters(event) == match_counts(compute_stats(current))
        assert counters(event) == (2, 2, 0)

    @pytest.mark.asyncio
    async def test_one_failed_write_leaves_the_others_committed(self):
        db = FailOnceCounterDatabase(":memory:")
        await db.connect()
        try:
            reconciler = RoundReconciler(db)
            event = await db.create_event(OWNER, "Locals", "Playtest", date(2024, 6, 1), "Core")
            db.failures_left = 0
            rounds = await seed_rounds(db, reconciler, event.id)
            db.failures_left = 1

            results = await asyncio.gather(
                reconciler.edit_round(OWNER, event.id, rounds[0], games("LP"), ["Ruby"]),
                reconciler.edit_round(OWNER, event.id, rounds[1], games("WD WP"), ["Ruby"]),
                reconciler.delete_round(OWNER, event.id, rounds[2]),
                reconciler.add_round(OWNER, event.id, games("DD WP"), ["Ruby"]),
                return_exceptions=True,
            )

            failed = [r for r in results if isinstance(r, Exception)]
            assert len(failed) == 1
            assert isinstance(failed[0], PersistenceError)
            assert sum(not isinstance(r, Exception) for r in results) == 3

            stored = counters(await db.fetch_event_meta(OWNER, event.id))
            assert stored == match_counts(compute_stats(await db.fetch_rounds(OWNER, event.id)))
        finally:
            await db.close()
