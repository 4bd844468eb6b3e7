import importlib
import logging
from pathlib import Path

from app.types.module import CoreModule, Module

hub_error_logger = logging.getLogger("hub.error")

module_list: list[Module] = []
core_module_list: list[CoreModule] = []
all_modules: list[CoreModule] = []

# Modules are sorted so that routes are always registered in the same order.
# A static path like `/rooms/available` must be registered before `/rooms/{room_id}`
for endpoints_file in sorted(Path().glob("app/modules/*/endpoints_*.py")):
    endpoint_module = importlib.import_module(
        ".".join(endpoints_file.with_suffix("").parts),
    )
    if hasattr(endpoint_module, "module"):
        module: Module = endpoint_module.module
        module_list.append(module)
    else:
        hub_error_logger.error(
            f"Module {endpoints_file} does not declare a module. It won't be enabled.",
        )


for endpoints_file in sorted(Path().glob("app/core/*/endpoints_*.py")):
    endpoint_module = importlib.import_module(
        ".".join(endpoints_file.with_suffix("").parts),
    )
    if hasattr(endpoint_module, "core_module"):
        core_module: CoreModule = endpoint_module.core_module
        core_module_list.append(core_module)
    else:
        hub_error_logger.error(
            f"Core module {endpoints_file} does not declare a core module. It won't be enabled.",
        )

all_modules = module_list + core_module_list
