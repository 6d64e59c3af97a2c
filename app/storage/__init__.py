from app.storage.cache import MatchCache
from app.storage.memory import InMemoryMatchRepository
from app.storage.sql import SqlMatchRepository

__all__ = ["MatchCache", "InMemoryMatchRepository", "SqlMatchRepository"]
