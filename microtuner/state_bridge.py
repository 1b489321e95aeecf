"""
Qt binding for tuner state updates.
"""

from PySide6.QtCore import QObject, Signal

from .tuner import TunerEngine, TunerState


class TunerStateBridge(QObject):
    """
    Re-emits engine states as a Qt signal.

    Slots in another thread (e.g. the GUI thread) receive the state through a
    queued connection, so the audio thread never waits for the UI. Several
    bridges can observe the same engine.
    """

    state_changed = Signal(object)

    def __init__(self, engine: TunerEngine, parent=None):
        super().__init__(parent)
        self._engine = engine
        self._unsubscribe = engine.subscribe(self._on_state)

    def _on_state(self, state: TunerState):
        self.state_changed.emit(state)

    @property
    def engine(self) -> TunerEngine:
        return self._engine

    @property
    def state(self) -> TunerState:
        """Latest engine state, e.g. to initialize a view."""
        return self._engine.state

    def detach(self):
        """Stop forwarding engine states."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
