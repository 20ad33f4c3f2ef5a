"""Command system with auto-discovery and registration.

This module provides:
- Auto-discovery of all commands from category subdirectories
- OP_MAP: The master command registry mapping categories and names to handlers
- Dispatch: The command dispatcher

Commands are automatically discovered by:
1. Scanning all .py files in category subdirectories
2. Importing them to trigger @command decorator registration
3. Building OP_MAP from the registry at module load time
"""

import importlib
from collections.abc import Mapping
from pathlib import Path

from .base import _COMMAND_REGISTRY, IOp, command
from .dispatch import Dispatch

__all__ = ["OP_MAP", "Dispatch", "IOp", "command"]


def discover_and_import_commands():
    """Import every command module under the category directories of cmds/."""
    cmds_dir = Path(__file__).parent

    for category_dir in cmds_dir.iterdir():
        if not category_dir.is_dir() or category_dir.name.startswith("_"):
            continue

        for module_file in category_dir.glob("*.py"):
            if module_file.name == "__init__.py":
                continue

            # Build module path like: idefer.cmds.defer.defer
            module_name = f".{category_dir.name}.{module_file.stem}"
            importlib.import_module(module_name, package=__package__)


def build_op_map() -> Mapping[str, Mapping[str, type[IOp]]]:
    """Build OP_MAP from auto-discovered commands.

    Returns:
        Nested dict: {category: {command_name: CommandClass}}
    """
    discover_and_import_commands()

    op_map: dict[str, dict[str, type[IOp]]] = {}

    # command names are global across categories
    all_command_names: dict[str, tuple[str, type[IOp]]] = {}

    for cmd_class in _COMMAND_REGISTRY:
        category = cmd_class.__command_category__
        op_map.setdefault(category, {})

        for name in cmd_class.__command_names__:
            if name in all_command_names:
                existing_category, existing_class = all_command_names[name]
                raise ValueError(
                    f"Duplicate command name '{name}':\n"
                    f"  - {existing_category}: {existing_class.__name__}\n"
                    f"  - {category}: {cmd_class.__name__}"
                )

            all_command_names[name] = (category, cmd_class)
            op_map[category][name] = cmd_class

    return op_map


# Build the master command registry
OP_MAP = build_op_map()
