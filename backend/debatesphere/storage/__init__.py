"""Storage module - document store interface, local implementation and repositories."""

from .interface import StorageInterface
from .local_storage import LocalStorage
from .user_storage import UserStorage
from .topic_storage import TopicStorage
from .debate_store import DebateStore, is_valid_id

__all__ = [
    'StorageInterface', 'LocalStorage', 'UserStorage', 'TopicStorage', 'DebateStore', 'is_valid_id'
]
