"""Shared fixtures."""

from datetime import date

import pytest_asyncio

from database import Database
from engine import RoundReconciler
from factories import OWNER


@pytest_asyncio.fixture
async def db():
    """In-memory database with the schema created."""
    database = Database(":memory:")
    await database.connect()
    yield database
    await database.close()


@pytest_asyncio.fixture
async def reconciler(db):
    return RoundReconciler(db)


@pytest_asyncio.fixture
async def deck(db):
    return await db.create_deck(OWNER, "Amber/Steel Songs", ["Amber", "Steel"], ["Midrange"], "Core")


@pytest_asyncio.fixture
async def tournament(db, deck):
    return await db.create_event(
        OWNER, "Set Championship", "Tournament", date(2024, 6, 1), "Core", user_deck_id=deck.id
    )


@pytest_asyncio.fixture
async def playtest(db, deck):
    return await db.create_event(
        OWNER, "Tuesday Testing", "Playtest", date(2024, 6, 4), "Core", user_deck_id=deck.id
    )
