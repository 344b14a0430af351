from .current_state import CurrentStateView, CurrentValue, MissingDataMarker, TankSnapshot

__all__ = [
    "CurrentStateView",
    "CurrentValue",
    "MissingDataMarker",
    "TankSnapshot",
]
