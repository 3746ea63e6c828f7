"""Filesystem change watching."""

from mdserver.watcher.change_watcher import ChangeWatcher, MarkdownChangeHandler

__all__ = ["ChangeWatcher", "MarkdownChangeHandler"]
