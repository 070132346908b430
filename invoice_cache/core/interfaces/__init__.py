from .cache import ConnectableStore, KeyValueStore

__all__ = ["ConnectableStore", "KeyValueStore"]
