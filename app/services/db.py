import motor.motor_asyncio
from pymongo import ASCENDING, DESCENDING, TEXT
import os
from dotenv import load_dotenv

from app.utils.logging_config import get_logger

logger = get_logger(__name__)

load_dotenv()

MONGO_DETAILS = os.getenv("MONGO_DETAILS", "mongodb://localhost:27017")

DB_NAME = os.getenv("DB_NAME", "cofounder_match")

logger.info(f"Initializing MongoDB connection to database: {DB_NAME}")

try:
    client = motor.motor_asyncio.AsyncIOMotorClient(MONGO_DETAILS)
    db = client[DB_NAME]
    logger.info("MongoDB client initialized successfully")
except Exception as e:
    logger.error(f"Failed to initialize MongoDB client: {e}")
    raise

# Collections
users_coll = db["users"]
profiles_coll = db["saved_profiles"]
connections_coll = db["connections"]
jobs_coll = db["jobs"]
cvs_coll = db["user_cvs"]


async def _ensure_index(coll, keys, **kwargs):
    try:
        await coll.create_index(keys, **kwargs)
        logger.debug(f"Ensured index on {coll.name}: {keys}")
    except Exception as e:
        if "already exists" in str(e).lower():
            logger.debug(f"Index on {coll.name} {keys} already exists")
        else:
            logger.warning(f"Could not create index on {coll.name} {keys}: {e}")


async def init_indexes():
    """Index initialization for collections."""
    logger.info("Starting database index initialization")

    await _ensure_index(users_coll, [("user_id", ASCENDING)], unique=True)
    await _ensure_index(profiles_coll, [("user_id", ASCENDING)], unique=True)
    await _ensure_index(cvs_coll, [("user_id", ASCENDING)], unique=True)

    # One relationship row per unordered user pair
    await _ensure_index(connections_coll, [("pair_key", ASCENDING)], unique=True)
    await _ensure_index(connections_coll, [("connection_id", ASCENDING)], unique=True)
    await _ensure_index(connections_coll, [("requester_id", ASCENDING), ("status", ASCENDING)])
    await _ensure_index(connections_coll, [("addressee_id", ASCENDING), ("status", ASCENDING)])

    await _ensure_index(jobs_coll, [("job_url", ASCENDING)], unique=True)
    await _ensure_index(jobs_coll, [("created_at", DESCENDING)])
    await _ensure_index(
        jobs_coll,
        [("job_title", TEXT), ("company_name", TEXT), ("description_text", TEXT)],
        name="jobs_search_idx",
        default_language="english",
    )

    logger.info("Database index initialization completed")
