"""
.env file loading for Service Changes.

Local runs (outside of a workflow runner) usually keep the access token and
the event settings in a .env file next to the checkout. This module finds
that file with a hierarchical search and loads it into the environment.
"""

from pathlib import Path
from typing import Optional, Dict
import logging

from dotenv import dotenv_values, load_dotenv

logger = logging.getLogger(__name__)


class EnvFileLoader:
    """
    .env file loader with hierarchical search.

    Search order (stops at first file found):
    1. Working directory: .service-changes/.env → .env
    2. Parent directories (up to git root or home): .service-changes/.env → .env
    3. Home directory: ~/.service-changes/.env → ~/.env

    Variables already present in the environment are never overridden.
    """

    CONFIG_DIR_NAME = ".service-changes"
    ENV_FILE_NAME = ".env"

    def __init__(self, working_directory: Optional[Path] = None):
        """Initialize env file loader.

        Args:
            working_directory: Starting directory for search
        """
        self.working_directory = Path(working_directory or Path.cwd()).resolve()
        self._loaded_file: Optional[Path] = None
        self._loaded_vars: Dict[str, str] = {}

    def load_env_file(self) -> Optional[Path]:
        """Load environment variables from .env file.

        Returns:
            Path to loaded .env file or None if none found
        """
        env_file_path = self._find_env_file()

        if env_file_path is None:
            logger.debug("No .env file found in search path")
            return None

        load_dotenv(env_file_path, override=False)
        self._loaded_file = env_file_path
        self._loaded_vars = {
            key: value
            for key, value in dotenv_values(env_file_path).items()
            if value is not None
        }

        logger.info(f"Loaded environment variables from: {env_file_path}")
        return env_file_path

    def get_loaded_file(self) -> Optional[Path]:
        """Get path to the loaded .env file."""
        return self._loaded_file

    def get_loaded_vars(self) -> Dict[str, str]:
        """Get variables loaded from .env file."""
        return self._loaded_vars.copy()

    def _find_env_file(self) -> Optional[Path]:
        """Find the first .env file in the search hierarchy.

        Returns:
            Path to .env file or None if not found
        """
        current_dir = self.working_directory

        while True:
            for candidate in self._candidates(current_dir):
                if candidate.is_file():
                    return candidate

            if self._should_stop_search(current_dir) or current_dir == current_dir.parent:
                break

            current_dir = current_dir.parent

        for candidate in self._candidates(Path.home()):
            if candidate.is_file():
                return candidate

        return None

    def _candidates(self, directory: Path):
        # .service-changes/.env is preferred over a bare .env
        return (
            directory / self.CONFIG_DIR_NAME / self.ENV_FILE_NAME,
            directory / self.ENV_FILE_NAME,
        )

    def _should_stop_search(self, directory: Path) -> bool:
        """Check if search should stop at this directory.

        Args:
            directory: Directory to check

        Returns:
            True if search should stop
        """
        # Stop at Git repository root
        if (directory / ".git").exists():
            return True

        # Stop at home directory
        if directory == Path.home():
            return True

        return False

