"""Filesystem infrastructure module."""
from .directory_manager import DirectoryManager
from .file_handle import FileHandle, open_file

__all__ = [
    'DirectoryManager',
    'FileHandle',
    'open_file',
]
