from tortoise import Tortoise
from app.core.config import DB_URL
import logging
from logging import INFO

# Set logging level for Tortoise ORM
logging.getLogger('tortoise').setLevel(INFO)

# Every models module registered with the ORM; tests reuse this list
MODELS_MODULES = [
    "app.models.inventory",
    "app.models.quote",
    "app.models.event",
    "app.models.ledger_audit",
]

async def init_db(db_url: str = DB_URL, generate_schemas: bool = True):
    """
    Initializes the Tortoise ORM connection. Tables are created unless
    ``generate_schemas`` is False (scripts running against an existing database).
    """
    try:
        await Tortoise.init(
            db_url=db_url,
            modules={"models": MODELS_MODULES},
        )
        if generate_schemas:
            # safe=True: existing tables (and their unique constraints) are left alone
            await Tortoise.generate_schemas(safe=True)
        print("Rental inventory database ready.")
    except Exception as e:
        print(f"FATAL ERROR: Could not connect to database at {db_url}. Error: {e}")
        # Re-raise to prevent the application from starting without a database
        raise e

async def close_db():
    """Closes all database connections."""
    await Tortoise.close_connections()
    print("Database connections closed.")
