"""Database setup and async helpers for Lorcana Match Tracker Bot."""

import asyncio
import aiosqlite
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Optional, Sequence

from errors import NotFound, PersistenceError
from models import CounterDelta, Deck, Event, GameResult, Round
from utils.console import Colors, log


def _join(values: Sequence[str]) -> str:
    return ",".join(values)


def _split(text: Optional[str]) -> list[str]:
    return [value for value in text.split(",") if value] if text else []


class Database:
    """Async SQLite database manager.

    Every query is scoped to an owner (the Discord user id of whoever ran the
    command). Writes run inside `transaction()`. Single reads do not take the
    lock; views that read several tables wrap them in `snapshot()`.
    """

    def __init__(self, db_path: str):
        self.db_path = db_path
        self._connection: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()
        self._tx_task: Optional[asyncio.Task] = None

    async def connect(self) -> None:
        """Establish database connection and initialize schema."""
        self._connection = await aiosqlite.connect(self.db_path)
        self._connection.row_factory = aiosqlite.Row
        await self._connection.execute("PRAGMA foreign_keys = ON")
        await self._create_tables()

    async def close(self) -> None:
        """Close database connection."""
        if self._connection:
            await self._connection.close()
            self._connection = None

    @property
    def conn(self) -> aiosqlite.Connection:
        """Get the active connection."""
        if not self._connection:
            raise RuntimeError("Database not connected")
        return self._connection

    async def _create_tables(self) -> None:
        """Create database tables if they don't exist."""
        await self.conn.executescript("""
            CREATE TABLE IF NOT EXISTS decks (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                owner_id TEXT NOT NULL,
                name TEXT NOT NULL,
                ink_colors TEXT NOT NULL DEFAULT '',
                archetypes TEXT NOT NULL DEFAULT '',
                format TEXT NOT NULL,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            );

            CREATE TABLE IF NOT EXISTS events (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                owner_id TEXT NOT NULL,
                name TEXT NOT NULL,
                event_type TEXT NOT NULL CHECK (event_type IN ('Tournament', 'Playtest')),
                user_deck_id INTEGER,
                user_deck_name TEXT,
                start_date TEXT NOT NULL,
                format TEXT NOT NULL,
                wins INTEGER NOT NULL DEFAULT 0,
                losses INTEGER NOT NULL DEFAULT 0,
                draws INTEGER NOT NULL DEFAULT 0,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (user_deck_id) REFERENCES decks(id) ON DELETE SET NULL
            );

            CREATE TABLE IF NOT EXISTS rounds (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                event_id INTEGER NOT NULL,
                opponent_ink_colors TEXT NOT NULL DEFAULT '',
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                FOREIGN KEY (event_id) REFERENCES events(id) ON DELETE CASCADE
            );

            CREATE TABLE IF NOT EXISTS round_games (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                round_id INTEGER NOT NULL,
                position INTEGER NOT NULL,
                result TEXT NOT NULL CHECK (result IN ('win', 'loss', 'draw')),
                on_the_play INTEGER NOT NULL,
                FOREIGN KEY (round_id) REFERENCES rounds(id) ON DELETE CASCADE,
                UNIQUE(round_id, position)
            );

            CREATE INDEX IF NOT EXISTS idx_events_owner ON events(owner_id);
            CREATE INDEX IF NOT EXISTS idx_rounds_event ON rounds(event_id);
        """)
        await self.conn.commit()

    # Transactions
    @asynccontextmanager
    async def transaction(self):
        """Run the enclosed writes as one unit.

        Commits on success, rolls back on any error. A transaction opened
        inside another by the same task joins the outer one.
        """
        if self._tx_task is not None and self._tx_task is asyncio.current_task():
            yield
            return

        async with self._lock:
            self._tx_task = asyncio.current_task()
            try:
                yield
                await self.conn.commit()
            except aiosqlite.Error as e:
                await self.conn.rollback()
                log("DB", f"Transaction rolled back: {e}", Colors.RED)
                raise PersistenceError(str(e)) from e
            except BaseException:
                await self.conn.rollback()
                raise
            finally:
                self._tx_task = None

    @asynccontextmanager
    async def snapshot(self):
        """Hold writers off while a view reads across several tables.

        Every write runs under the same lock, so reads made here only see
        committed data. Joins a transaction already held by this task.
        """
        if self._tx_task is not None and self._tx_task is asyncio.current_task():
            yield
            return

        async with self._lock:
            yield

    @asynccontextmanager
    async def _reading(self, operation: str):
        """Surface read failures as PersistenceError."""
        try:
            yield
        except aiosqlite.Error as e:
            log("DB", f"{operation} failed: {e}", Colors.RED)
            raise PersistenceError(f"{operation} failed: {e}") from e

    # Row conversion
    @staticmethod
    def _deck_from_row(row) -> Deck:
        return Deck(
            id=row["id"],
            owner_id=row["owner_id"],
            name=row["name"],
            ink_colors=_split(row["ink_colors"]),
            archetypes=_split(row["archetypes"]),
            format=row["format"],
            created_at=datetime.fromisoformat(row["created_at"])
        )

    @staticmethod
    def _event_from_row(row) -> Event:
        return Event(
            id=row["id"],
            owner_id=row["owner_id"],
            name=row["name"],
            event_type=row["event_type"],
            user_deck_id=row["user_deck_id"],
            user_deck_name=row["user_deck_name"],
            start_date=date.fromisoformat(row["start_date"]),
            format=row["format"],
            wins=row["wins"],
            losses=row["losses"],
            draws=row["draws"],
            created_at=datetime.fromisoformat(row["created_at"])
        )

    # Deck operations
    async def create_deck(
        self,
        owner_id: str,
        name: str,
        ink_colors: Sequence[str],
        archetypes: Sequence[str],
        format: str
    ) -> Deck:
        """Create a new deck."""
        name = name.strip()
        async with self.transaction():
            async with self.conn.execute(
                "INSERT INTO decks (owner_id, name, ink_colors, archetypes, format) VALUES (?, ?, ?, ?, ?)",
                (owner_id, name, _join(ink_colors), _join(archetypes), format)
            ) as cursor:
                deck_id = cursor.lastrowid

        log("DB", f"Created deck {deck_id} '{name}' for {owner_id}", Colors.BLUE)
        return Deck(
            id=deck_id,
            owner_id=owner_id,
            name=name,
            ink_colors=list(ink_colors),
            archetypes=list(archetypes),
            format=format,
            created_at=datetime.now()
        )

    async def get_deck(self, owner_id: str, deck_id: int) -> Optional[Deck]:
        """Get a deck by id, or None if the owner has no such deck."""
        async with self._reading("get_deck"):
            async with self.conn.execute(
                "SELECT * FROM decks WHERE id = ? AND owner_id = ?",
                (deck_id, owner_id)
            ) as cursor:
                row = await cursor.fetchone()
                return self._deck_from_row(row) if row else None

    async def list_decks(self, owner_id: str) -> list[Deck]:
        """Get all of an owner's decks, newest first."""
        async with self._reading("list_decks"):
            async with self.conn.execute(
                "SELECT * FROM decks WHERE owner_id = ? ORDER BY created_at DESC, id DESC",
                (owner_id,)
            ) as cursor:
                return [self._deck_from_row(row) async for row in cursor]

    async def delete_deck(self, owner_id: str, deck_id: int) -> None:
        """Delete a deck. Its events are kept and fall back to the deck name."""
        async with self.transaction():
            async with self.conn.execute(
                "DELETE FROM decks WHERE id = ? AND owner_id = ?",
                (deck_id, owner_id)
            ) as cursor:
                if cursor.rowcount == 0:
                    raise NotFound(f"Deck {deck_id} not found")
        log("DB", f"Deleted deck {deck_id}", Colors.BLUE)

    # Event operations
    async def _resolve_deck_name(self, owner_id: str, deck_id: Optional[int]) -> Optional[str]:
        if deck_id is None:
            return None
        deck = await self.get_deck(owner_id, deck_id)
        if not deck:
            raise NotFound(f"Deck {deck_id} not found")
        return deck.name

    async def create_event(
        self,
        owner_id: str,
        name: str,
        event_type: str,
        start_date: date,
        format: str,
        user_deck_id: Optional[int] = None,
        user_deck_name: Optional[str] = None
    ) -> Event:
        """Create a new event with zeroed counters.

        The deck name is stored alongside the id so events stay attributable
        if the deck is later deleted.
        """
        if user_deck_id is not None:
            user_deck_name = await self._resolve_deck_name(owner_id, user_deck_id)

        async with self.transaction():
            async with self.conn.execute(
                """INSERT INTO events
                   (owner_id, name, event_type, user_deck_id, user_deck_name, start_date, format)
                   VALUES (?, ?, ?, ?, ?, ?, ?)""",
                (owner_id, name.strip(), event_type, user_deck_id, user_deck_name,
                 start_date.isoformat(), format)
            ) as cursor:
                event_id = cursor.lastrowid

        log("DB", f"Created event {event_id} '{name}' ({event_type}) for {owner_id}", Colors.BLUE)
        return Event(
            id=event_id,
            owner_id=owner_id,
            name=name.strip(),
            event_type=event_type,
            user_deck_id=user_deck_id,
            user_deck_name=user_deck_name,
            start_date=start_date,
            format=format,
            wins=0,
            losses=0,
            draws=0,
            created_at=datetime.now()
        )

    async def update_event(
        self,
        owner_id: str,
        event_id: int,
        name: str,
        event_type: str,
        start_date: date,
        format: str,
        user_deck_id: Optional[int] = None,
        detach_deck: bool = False
    ) -> None:
        """Update an event's details. Counters are never touched here.

        A missing `user_deck_id` keeps the stored deck name so legacy events
        stay attributed; `detach_deck` clears both.
        """
        if detach_deck:
            user_deck_id = None
        user_deck_name = await self._resolve_deck_name(owner_id, user_deck_id)
        async with self.transaction():
            async with self.conn.execute(
                """UPDATE events
                   SET name = ?, event_type = ?, user_deck_id = ?,
                       user_deck_name = CASE WHEN ? THEN NULL ELSE COALESCE(?, user_deck_name) END,
                       start_date = ?, format = ?
                   WHERE id = ? AND owner_id = ?""",
                (name.strip(), event_type, user_deck_id, int(detach_deck), user_deck_name,
                 start_date.isoformat(), format, event_id, owner_id)
            ) as cursor:
                if cursor.rowcount == 0:
                    raise NotFound(f"Event {event_id} not found")

    async def fetch_event_meta(self, owner_id: str, event_id: int) -> Event:
        """Get an event by id."""
        async with self._reading("fetch_event_meta"):
            async with self.conn.execute(
                "SELECT * FROM events WHERE id = ? AND owner_id = ?",
                (event_id, owner_id)
            ) as cursor:
                row = await cursor.fetchone()
        if not row:
            raise NotFound(f"Event {event_id} not found")
        return self._event_from_row(row)

    async def list_events(self, owner_id: str, event_type: Optional[str] = None) -> list[Event]:
        """Get an owner's events, most recent start date first."""
        query = "SELECT * FROM events WHERE owner_id = ?"
        params: tuple = (owner_id,)
        if event_type:
            query += " AND event_type = ?"
            params += (event_type,)
        query += " ORDER BY start_date DESC, created_at DESC, id DESC"

        async with self._reading("list_events"):
            async with self.conn.execute(query, params) as cursor:
                return [self._event_from_row(row) async for row in cursor]

    async def delete_event(self, owner_id: str, event_id: int) -> None:
        """Delete an event together with all of its rounds."""
        async with self.transaction():
            await self.fetch_event_meta(owner_id, event_id)
            await self.conn.execute(
                "DELETE FROM round_games WHERE round_id IN (SELECT id FROM rounds WHERE event_id = ?)",
                (event_id,)
            )
            await self.conn.execute("DELETE FROM rounds WHERE event_id = ?", (event_id,))
            await self.conn.execute(
                "DELETE FROM events WHERE id = ? AND owner_id = ?",
                (event_id, owner_id)
            )
        log("DB", f"Deleted event {event_id} and its rounds", Colors.BLUE)

    async def apply_counter_delta(self, owner_id: str, event_id: int, delta: CounterDelta) -> None:
        """Add a signed delta to an event's counters in a single UPDATE."""
        async with self.transaction():
            async with self.conn.execute(
                """UPDATE events
                   SET wins = wins + ?, losses = losses + ?, draws = draws + ?
                   WHERE id = ? AND owner_id = ?""",
                (delta.wins, delta.losses, delta.draws, event_id, owner_id)
            ) as cursor:
                if cursor.rowcount == 0:
                    raise NotFound(f"Event {event_id} not found")

    # Round operations
    async def fetch_rounds(self, owner_id: str, event_id: int) -> list[Round]:
        """Get an event's rounds in the order they were recorded."""
        async with self._reading("fetch_rounds"):
            async with self.conn.execute("""
                SELECT r.id, r.event_id, r.opponent_ink_colors, r.created_at
                FROM rounds r
                JOIN events e ON r.event_id = e.id
                WHERE r.event_id = ? AND e.owner_id = ?
                ORDER BY r.created_at, r.id
            """, (event_id, owner_id)) as cursor:
                round_rows = await cursor.fetchall()

            games: dict[int, list[GameResult]] = {row["id"]: [] for row in round_rows}
            async with self.conn.execute("""
                SELECT g.round_id, g.result, g.on_the_play
                FROM round_games g
                JOIN rounds r ON g.round_id = r.id
                WHERE r.event_id = ?
                ORDER BY g.round_id, g.position
            """, (event_id,)) as cursor:
                async for row in cursor:
                    if row["round_id"] in games:
                        games[row["round_id"]].append(
                            GameResult(result=row["result"], on_the_play=bool(row["on_the_play"]))
                        )

        return [
            Round(
                id=row["id"],
                event_id=row["event_id"],
                games=tuple(games[row["id"]]),
                opponent_ink_colors=tuple(_split(row["opponent_ink_colors"])),
                created_at=datetime.fromisoformat(row["created_at"])
            )
            for row in round_rows
        ]

    async def fetch_round(self, owner_id: str, event_id: int, round_id: int) -> Round:
        """Get a single round of an event."""
        for round in await self.fetch_rounds(owner_id, event_id):
            if round.id == round_id:
                return round
        raise NotFound(f"Round {round_id} not found in event {event_id}")

    async def _insert_games(self, round_id: int, games: Sequence[GameResult]) -> None:
        await self.conn.executemany(
            "INSERT INTO round_games (round_id, position, result, on_the_play) VALUES (?, ?, ?, ?)",
            [
                (round_id, position, game.result, int(game.on_the_play))
                for position, game in enumerate(games, 1)
            ]
        )

    async def create_round(
        self,
        owner_id: str,
        event_id: int,
        games: Sequence[GameResult],
        opponent_ink_colors: Sequence[str]
    ) -> int:
        """Create a round with its games. Returns the round id."""
        async with self.transaction():
            await self.fetch_event_meta(owner_id, event_id)
            async with self.conn.execute(
                "INSERT INTO rounds (event_id, opponent_ink_colors) VALUES (?, ?)",
                (event_id, _join(opponent_ink_colors))
            ) as cursor:
                round_id = cursor.lastrowid
            await self._insert_games(round_id, games)
        return round_id

    async def replace_round(
        self,
        owner_id: str,
        event_id: int,
        round_id: int,
        games: Sequence[GameResult],
        opponent_ink_colors: Sequence[str]
    ) -> None:
        """Replace a round's games and opponent inks."""
        async with self.transaction():
            async with self.conn.execute(
                """UPDATE rounds SET opponent_ink_colors = ?
                   WHERE id = ? AND event_id = ?
                   AND event_id IN (SELECT id FROM events WHERE owner_id = ?)""",
                (_join(opponent_ink_colors), round_id, event_id, owner_id)
            ) as cursor:
                if cursor.rowcount == 0:
                    raise NotFound(f"Round {round_id} not found in event {event_id}")
            await self.conn.execute("DELETE FROM round_games WHERE round_id = ?", (round_id,))
            await self._insert_games(round_id, games)

    async def delete_round(self, owner_id: str, event_id: int, round_id: int) -> None:
        """Delete a round and its games."""
        async with self.transaction():
            await self.conn.execute(
                """DELETE FROM round_games WHERE round_id IN (
                       SELECT r.id FROM rounds r JOIN events e ON r.event_id = e.id
                       WHERE r.id = ? AND r.event_id = ? AND e.owner_id = ?
                   )""",
                (round_id, event_id, owner_id)
            )
            async with self.conn.execute(
                """DELETE FROM rounds
                   WHERE id = ? AND event_id = ?
                   AND event_id IN (SELECT id FROM events WHERE owner_id = ?)""",
                (round_id, event_id, owner_id)
            ) as cursor:
                if cursor.rowcount == 0:
                    raise NotFound(f"Round {round_id} not found in event {event_id}")
