from .base import StoragePort
from .memory import MemoryStorage

__all__ = ['StoragePort', 'MemoryStorage', 'SQLAlchemyStorage']


def __getattr__(name: str):  # PEP 562 lazy export
    if name == 'SQLAlchemyStorage':
        from .sql import SQLAlchemyStorage
        return SQLAlchemyStorage
    raise AttributeError(name)
