"""
Lending system container shared by the API routers
"""

from typing import Optional

from ..auto_extend import AutoExtendRunner
from ..config import get_config
from ..engine import ScheduleEngine
from ..storage import InMemoryStorage, SQLiteStorage, StorageInterface


class LendingSystem:
    """Storage, ledger and schedule engine wired together"""

    def __init__(self, storage: Optional[StorageInterface] = None):
        if storage is None:
            config = get_config()
            if config.storage_backend == "sqlite":
                storage = SQLiteStorage(config.database_path)
            else:
                storage = InMemoryStorage()

        self.storage = storage
        self.engine = ScheduleEngine(self.storage)
        self.ledger = self.engine.ledger
        self.auto_extend_runner = AutoExtendRunner(self.engine)


_lending_system: Optional[LendingSystem] = None


# Dependency to get the lending system
def get_lending_system() -> LendingSystem:
    global _lending_system
    if _lending_system is None:
        _lending_system = LendingSystem()
    return _lending_system
