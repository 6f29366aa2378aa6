"""Filesystem helpers for AppInit."""

import logging
import os
import shutil

from rich.console import Console


class FileSystemService:
    """Encapsulates file and directory side effects."""

    def __init__(self, logger: logging.Logger, console: Console):
        self.logger = logger
        self.console = console

    def copy_file(self, source: str, destination: str):
        os.makedirs(os.path.dirname(os.path.abspath(destination)), exist_ok=True)
        shutil.copyfile(source, destination)
        self.logger.debug("Copied %s to %s", source, destination)

    @staticmethod
    def is_readable_dir(path: str) -> bool:
        return os.path.isdir(path) and os.access(path, os.R_OK | os.X_OK)

    def clear_dir_contents(self, path: str):
        """Empties a directory but keeps the directory itself and dotfiles like .gitignore."""
        if not os.path.isdir(path):
            return

        for item in os.listdir(path):
            if item.startswith("."):
                continue
            item_path = os.path.join(path, item)
            try:
                if os.path.isdir(item_path) and not os.path.islink(item_path):
                    shutil.rmtree(item_path)
                else:
                    os.remove(item_path)
            except OSError as exc:
                message = f"Warning: Could not remove {item_path}: {exc}"
                self.console.print(f"[yellow]{message}[/yellow]")
                self.logger.warning(message)
        self.logger.debug("Cleared directory: %s", path)
