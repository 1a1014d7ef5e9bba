from .base import BaseSink, doc_id, key_path
from .json_file import JsonFileSink

__all__ = ["BaseSink", "JsonFileSink", "doc_id", "key_path"]
