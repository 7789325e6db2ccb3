"""Access to the local function project tree.

A project root contains a ``functions`` directory with one folder per
function. Each folder holds ``config.json`` and ``index.js``::

    project/
        functions/
            my-function/
                config.json
                index.js
"""

import json
import logging
from pathlib import Path
from typing import Any, Optional

from .exceptions import LocalFunctionError
from .models import LocalFunctionDefinition
from .utils import NO_EVENT, PLACEHOLDER_ENV_KEY, PLACEHOLDER_ENV_VALUE

logger = logging.getLogger(__name__)

FUNCTIONS_DIR = "functions"
CONFIG_FILE = "config.json"
CODE_FILE = "index.js"


def _normalize_environment(raw: Any) -> dict[str, str]:
    """Convert config.json environment variables into a mapping.

    Accepts both ``{"NAME": "value"}`` and the older
    ``[{"key": "NAME", "value": "value"}]`` format. Entries with an empty
    key are dropped.
    """
    if not raw:
        return {}
    if isinstance(raw, dict):
        return {str(k): str(v) for k, v in raw.items() if k}
    if isinstance(raw, list):
        return {
            str(e.get("key")): str(e.get("value", ""))
            for e in raw
            if isinstance(e, dict) and e.get("key")
        }
    raise ValueError(f"Unsupported environmentVariables format: {type(raw).__name__}")


class LocalProject:
    """Reads and writes function folders of a local project."""

    def __init__(self, cwd: Optional[Path] = None):
        """Initialize the project reader.

        Args:
            cwd: Working directory (defaults to the process working directory)
        """
        self.cwd = Path(cwd) if cwd is not None else Path.cwd()

    def get_root(self) -> Path:
        """Return the project root.

        The root is the working directory, its parent or its grandparent,
        whichever contains a ``functions`` directory.

        Raises:
            LocalFunctionError: If no project root is found
        """
        for candidate in (self.cwd, self.cwd.parent, self.cwd.parent.parent):
            if (candidate / FUNCTIONS_DIR).is_dir():
                return candidate
        raise LocalFunctionError(
            "Could not find root directory. "
            "Please make sure you are in a functions project."
        )

    @property
    def functions_dir(self) -> Path:
        return self.get_root() / FUNCTIONS_DIR

    def get_function_path(self, name: str) -> Path:
        return self.functions_dir / name

    def list_function_names(self) -> list[str]:
        """Return the names of all function folders, sorted."""
        return sorted(
            entry.name
            for entry in self.functions_dir.iterdir()
            if entry.is_dir() and not entry.name.startswith(".")
        )

    def current_function_name(self) -> str:
        """Return the function whose folder is the working directory.

        Raises:
            LocalFunctionError: If the working directory is not a function folder
        """
        config_path = self.cwd / CONFIG_FILE
        if not config_path.is_file():
            raise LocalFunctionError(
                "Could not find function. Please make sure you are in a "
                "function folder or pass a function name."
            )
        config = self._read_json(config_path)
        return config.get("name") or self.cwd.name

    def resolve_target_function_names(
        self, requested: Optional[list[str]] = None, all_functions: bool = False
    ) -> list[str]:
        """Resolve which functions a command applies to.

        Args:
            requested: Function names given by the user
            all_functions: Use every function folder of the project

        Returns:
            Function names, without duplicates, in request order
        """
        if all_functions:
            return self.list_function_names()
        if requested:
            return list(dict.fromkeys(requested))
        return [self.current_function_name()]

    def _read_json(self, path: Path) -> dict[str, Any]:
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise LocalFunctionError(f"Could not read {path}: {e}") from e
        if not isinstance(data, dict):
            raise LocalFunctionError(f"{path} does not contain a JSON object")
        return data

    def read_local_definition(self, name: str) -> LocalFunctionDefinition:
        """Read a function folder.

        Args:
            name: Function folder name

        Returns:
            LocalFunctionDefinition

        Raises:
            LocalFunctionError: If the folder, config or code is unusable
        """
        folder = self.get_function_path(name)
        if not folder.is_dir():
            raise LocalFunctionError(
                f"Could not find the folder of function {name}. "
                "Please make sure it's available in the functions folder."
            )

        config = self._read_json(folder / CONFIG_FILE)
        code_path = folder / CODE_FILE
        try:
            code = code_path.read_text(encoding="utf-8")
        except (OSError, ValueError) as e:
            raise LocalFunctionError(f"Could not read {code_path}: {e}") from e

        try:
            environment = _normalize_environment(config.get("environmentVariables"))
        except ValueError as e:
            raise LocalFunctionError(f"Invalid config of function {name}: {e}") from e

        event = config.get("event")
        return LocalFunctionDefinition(
            name=name,
            description=config.get("description") or "",
            code=code,
            event_id=event if event and event != NO_EVENT else None,
            environment_variables=environment,
        )

    def write_local_definition(
        self,
        name: str,
        definition: LocalFunctionDefinition,
        version: Optional[int] = None,
    ) -> Path:
        """Write a function definition into its local folder, overwriting files.

        Args:
            name: Function folder name
            definition: Definition to write
            version: Remote manifest version to record in config.json

        Returns:
            Path of the function folder
        """
        folder = self.get_function_path(name)
        folder.mkdir(parents=True, exist_ok=True)

        environment = definition.environment_variables or {
            PLACEHOLDER_ENV_KEY: PLACEHOLDER_ENV_VALUE
        }
        config: dict[str, Any] = {
            "name": definition.name,
            "event": definition.event_id or NO_EVENT,
            "description": definition.description,
            "input": {"headers": [], "payload": {}},
        }
        if version is not None:
            config["version"] = version
        config["environmentVariables"] = environment

        (folder / CONFIG_FILE).write_text(
            json.dumps(config, indent=4) + "\n", encoding="utf-8"
        )
        (folder / CODE_FILE).write_text(definition.code, encoding="utf-8")
        logger.debug("Wrote function %s to %s", name, folder)
        return folder
