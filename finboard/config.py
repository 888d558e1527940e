import logging
import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


@dataclass(frozen=True)
class Settings:
    store: str = "json"
    data_path: str = "data/finboard.json"
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db_name: str = "sunhack"
    transactions_collection: str = "hack"
    goals_collection: str = "goals"
    budgets_collection: str = "budgets"
    currency: str = "INR"
    log_level: str = "WARNING"


def load_settings() -> Settings:
    return Settings(
        store=os.getenv("FINBOARD_STORE", "json").strip().lower(),
        data_path=os.getenv("FINBOARD_DATA_PATH", "data/finboard.json"),
        mongo_uri=os.getenv("MONGO_URI", "mongodb://localhost:27017"),
        mongo_db_name=os.getenv("MONGO_DB_NAME", "sunhack"),
        transactions_collection=os.getenv("FINBOARD_TRANSACTIONS_COLLECTION", "hack"),
        goals_collection=os.getenv("FINBOARD_GOALS_COLLECTION", "goals"),
        budgets_collection=os.getenv("FINBOARD_BUDGETS_COLLECTION", "budgets"),
        currency=os.getenv("FINBOARD_CURRENCY", "INR"),
        log_level=os.getenv("FINBOARD_LOG_LEVEL", "WARNING").upper(),
    )


def configure_logging(level: str = "WARNING") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
