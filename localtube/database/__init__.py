from .json_store import StateStore
