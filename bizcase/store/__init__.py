from .persistence import InMemoryPersistence, LocalFilePersistence, PersistencePort
from .state import StateStore

__all__ = ["InMemoryPersistence", "LocalFilePersistence", "PersistencePort", "StateStore"]
