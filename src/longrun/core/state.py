# src/longrun/core/state.py

from __future__ import annotations

from dataclasses import dataclass

from ..runs.run_registry import RunRegistry
from ..scheduling.functions import FunctionRegistry
from .ports import PropertyStore, TriggerRepo


@dataclass
class AppState:
    # Settings are kept on the state so task modules can read them.
    settings: object

    store: PropertyStore
    scheduler: TriggerRepo
    registry: RunRegistry
    functions: FunctionRegistry
