from neo4j import GraphDatabase
from dotenv import load_dotenv
import logging
import os

load_dotenv()

logger = logging.getLogger(__name__)

# URI examples: "neo4j://localhost", "neo4j+s://xxx.databases.neo4j.io"
URI = os.getenv("NEO4J_URI")
AUTH = (os.getenv("NEO4J_USERNAME"), os.getenv("NEO4J_PASSWORD"))
DATABASE = os.getenv("NEO4J_DATABASE")  # None -> server default database

_driver = None


def get_driver():
    """Shared driver, created on first use. The driver itself is thread-safe."""
    global _driver
    if _driver is None:
        if not URI or not AUTH[0] or not AUTH[1]:
            raise ValueError(
                "Neo4j credentials not configured. Set NEO4J_URI, NEO4J_USERNAME, and NEO4J_PASSWORD environment variables."
            )
        logger.info(f"Connecting to Neo4j at {URI}")
        _driver = GraphDatabase.driver(URI, auth=AUTH)
    return _driver


def close_driver():
    global _driver
    if _driver is not None:
        _driver.close()
        _driver = None
        logger.info("Neo4j driver closed")


def verify_connectivity():
    get_driver().verify_connectivity()
